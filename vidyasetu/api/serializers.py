"""
ORM -> JSON projections shared by the route modules.

Quiz projections come in two shapes: the public one never carries
``correct_answer`` or an option's ``is_correct``; the full one (owner/admin)
does.
"""

from typing import Any, Dict, Optional

from vidyasetu.core.models import Content, Progress, Question, Quiz, QuizResult, User


def _value(enum_member) -> Optional[str]:
    return enum_member.value if enum_member is not None else None


def _iso(dt) -> Optional[str]:
    return dt.isoformat() if dt else None


def creator_summary(user: Optional[User]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {"id": user.id, "name": user.name}


def content_summary(content: Optional[Content]) -> Optional[Dict[str, Any]]:
    if content is None:
        return None
    return {
        "id": content.id,
        "title": content.title,
        "subject": _value(content.subject),
        "grade": _value(content.grade),
        "content_type": _value(content.content_type),
        "thumbnail": content.thumbnail,
        "duration": content.duration,
    }


def content_to_dict(content: Content, viewer: Optional[User] = None) -> Dict[str, Any]:
    data = {
        "id": content.id,
        "title": content.title,
        "description": content.description,
        "subject": _value(content.subject),
        "grade": _value(content.grade),
        "content_type": _value(content.content_type),
        "file_url": content.file_url,
        "text_content": content.text_content,
        "thumbnail": content.thumbnail,
        "duration": content.duration,
        "file_size": content.file_size,
        "tags": list(content.tags or []),
        "difficulty": _value(content.difficulty),
        "created_by": content.created_by_id,
        "creator": creator_summary(content.creator),
        "is_published": content.is_published,
        "views": content.views,
        "downloads": content.downloads,
        "likes": content.like_count,
        "order": content.order,
        "created_at": _iso(content.created_at),
        "updated_at": _iso(content.updated_at),
    }
    if viewer is not None:
        data["liked"] = content.is_liked_by(viewer.id)
    return data


def question_to_dict(question: Question, full: bool = False) -> Dict[str, Any]:
    data = {
        "id": question.id,
        "question_text": question.question_text,
        "question_type": _value(question.question_type),
        "options": question.public_options(),
        "points": question.points,
        "order": question.order,
    }
    if full:
        data["options"] = [
            {"text": opt.get("text", ""), "is_correct": bool(opt.get("is_correct"))}
            for opt in (question.options or [])
        ]
        data["correct_answer"] = question.get_decrypted_correct_answer()
        data["explanation"] = question.explanation
    return data


def quiz_to_dict(quiz: Quiz, full: bool = False) -> Dict[str, Any]:
    return {
        "id": quiz.id,
        "title": quiz.title,
        "description": quiz.description,
        "subject": _value(quiz.subject),
        "grade": _value(quiz.grade),
        "related_content": quiz.related_content_id,
        "duration": quiz.duration,
        "passing_score": quiz.passing_score,
        "total_points": quiz.total_points,
        "difficulty": _value(quiz.difficulty),
        "is_published": quiz.is_published,
        "attempts": quiz.attempts,
        "tags": list(quiz.tags or []),
        "created_by": quiz.created_by_id,
        "creator": creator_summary(quiz.creator),
        "questions": [question_to_dict(q, full=full) for q in quiz.questions],
        "created_at": _iso(quiz.created_at),
        "updated_at": _iso(quiz.updated_at),
    }


def result_to_dict(result: QuizResult) -> Dict[str, Any]:
    """A graded attempt, each answer carrying its question for review"""
    quiz = result.quiz
    questions = {q.id: q for q in quiz.questions} if quiz is not None else {}

    answers = []
    for answer in result.answers or []:
        entry = dict(answer)
        question = questions.get(answer.get("question_id"))
        if question is not None:
            # Text saved at submission wins over later edits
            if not entry.get("question_text"):
                entry["question_text"] = question.question_text
            entry["correct_answer"] = question.get_decrypted_correct_answer()
            entry["explanation"] = question.explanation
        answers.append(entry)

    return {
        "id": result.id,
        "quiz_id": result.quiz_id,
        "quiz": (
            {"id": quiz.id, "title": quiz.title, "subject": _value(quiz.subject)}
            if quiz is not None
            else None
        ),
        "student_id": result.student_id,
        "answers": answers,
        "score": result.score,
        "total_points": result.total_points,
        "percentage": result.percentage,
        "passed": result.passed,
        "time_taken": result.time_taken,
        "started_at": _iso(result.started_at),
        "submitted_at": _iso(result.submitted_at),
        "attempt_number": result.attempt_number,
    }


def result_summary(result: QuizResult) -> Dict[str, Any]:
    quiz = result.quiz
    return {
        "id": result.id,
        "quiz_id": result.quiz_id,
        "quiz_title": quiz.title if quiz is not None else None,
        "subject": _value(quiz.subject) if quiz is not None else None,
        "score": result.score,
        "total_points": result.total_points,
        "percentage": result.percentage,
        "passed": result.passed,
        "attempt_number": result.attempt_number,
        "submitted_at": _iso(result.submitted_at),
    }


def progress_to_dict(progress: Progress) -> Dict[str, Any]:
    return {
        "id": progress.id,
        "student_id": progress.student_id,
        "content_id": progress.content_id,
        "content": content_summary(progress.content),
        "status": _value(progress.status),
        "progress_percentage": progress.progress_percentage,
        "time_spent": progress.time_spent,
        "last_accessed_at": _iso(progress.last_accessed_at),
        "completed_at": _iso(progress.completed_at),
        "notes": progress.notes,
        "bookmarked": progress.bookmarked,
        "created_at": _iso(progress.created_at),
        "updated_at": _iso(progress.updated_at),
    }
