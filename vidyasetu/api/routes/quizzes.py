from datetime import datetime
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field
from typing import List, Optional, Union

from vidyasetu.api.dependencies import get_quiz_service
from vidyasetu.api.responses import success_response
from vidyasetu.api.security import (
    get_current_user,
    get_optional_current_user,
    require_teacher_or_admin,
)
from vidyasetu.api.serializers import quiz_to_dict, result_to_dict
from vidyasetu.core.models import Difficulty, Grade, QuestionType, Subject, User
from vidyasetu.core.services.quiz_service import QuizService

router = APIRouter(prefix="/api/quizzes", tags=["quizzes"])

# Models


class OptionIn(BaseModel):
    text: str
    is_correct: bool = False


class QuestionIn(BaseModel):
    question_text: str
    question_type: QuestionType = QuestionType.SHORT_ANSWER
    options: List[OptionIn] = Field(default_factory=list)
    correct_answer: str
    explanation: Optional[str] = None
    points: Optional[int] = 1
    order: Optional[int] = None


class QuizCreate(BaseModel):
    title: str
    description: str
    subject: Subject
    grade: Grade
    questions: List[QuestionIn]
    duration: Optional[int] = None
    passing_score: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    related_content: Optional[int] = None
    tags: Optional[Union[str, List[str]]] = None


class QuizUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    subject: Optional[Subject] = None
    grade: Optional[Grade] = None
    questions: Optional[List[QuestionIn]] = None
    duration: Optional[int] = None
    passing_score: Optional[int] = None
    difficulty: Optional[Difficulty] = None
    related_content: Optional[int] = None
    tags: Optional[Union[str, List[str]]] = None


class AnswerIn(BaseModel):
    question_id: Union[int, str]
    user_answer: Optional[Union[str, int, float, bool]] = None


class SubmitRequest(BaseModel):
    answers: List[AnswerIn]
    started_at: datetime


def _questions_payload(questions: List[QuestionIn]) -> List[dict]:
    return [q.model_dump() for q in questions]


@router.get("")
async def list_quizzes(
    subject: Optional[Subject] = None,
    grade: Optional[Grade] = None,
    difficulty: Optional[Difficulty] = None,
    created_by: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    result = service.list_quizzes(
        viewer=current_user,
        subject=subject,
        grade=grade,
        difficulty=difficulty,
        created_by=created_by,
        page=page,
        limit=limit,
        sort=sort,
    )
    return success_response(
        [quiz_to_dict(q) for q in result.items], pagination=result.pagination()
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_quiz(
    quiz_data: QuizCreate,
    current_user: User = Depends(require_teacher_or_admin),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.create_quiz(
        current_user,
        title=quiz_data.title,
        description=quiz_data.description,
        subject=quiz_data.subject,
        grade=quiz_data.grade,
        questions=_questions_payload(quiz_data.questions),
        duration=quiz_data.duration,
        passing_score=quiz_data.passing_score,
        difficulty=quiz_data.difficulty,
        related_content_id=quiz_data.related_content,
        tags=quiz_data.tags,
    )
    return success_response(
        quiz_to_dict(quiz, full=True),
        "Quiz created successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{quiz_id}")
async def get_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.get_quiz(quiz_id, current_user)
    return success_response(quiz_to_dict(quiz))


@router.get("/{quiz_id}/full")
async def get_quiz_full(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.get_quiz_full(quiz_id, current_user)
    return success_response(quiz_to_dict(quiz, full=True))


@router.put("/{quiz_id}")
async def update_quiz(
    quiz_id: int,
    quiz_data: QuizUpdate,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    changes = quiz_data.model_dump(exclude_unset=True, exclude={"questions"})
    if "related_content" in changes:
        changes["related_content_id"] = changes.pop("related_content")
    questions = (
        _questions_payload(quiz_data.questions)
        if quiz_data.questions is not None
        else None
    )
    quiz = service.update_quiz(quiz_id, current_user, changes, questions=questions)
    return success_response(quiz_to_dict(quiz, full=True), "Quiz updated successfully")


@router.delete("/{quiz_id}")
async def delete_quiz(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    service.delete_quiz(quiz_id, current_user)
    return success_response(message="Quiz deleted successfully")


@router.patch("/{quiz_id}/publish")
async def toggle_publish(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    quiz = service.toggle_publish(quiz_id, current_user)
    message = "Quiz published" if quiz.is_published else "Quiz unpublished"
    return success_response(quiz_to_dict(quiz, full=True), message)


@router.post("/{quiz_id}/submit", status_code=status.HTTP_201_CREATED)
async def submit_quiz(
    quiz_id: int,
    submission: SubmitRequest,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    result = service.submit_quiz(
        quiz_id,
        current_user,
        [(a.question_id, a.user_answer) for a in submission.answers],
        submission.started_at,
    )
    return success_response(
        result_to_dict(result),
        "Quiz submitted successfully",
        status_code=status.HTTP_201_CREATED,
    )


@router.get("/{quiz_id}/results")
async def get_results(
    quiz_id: int,
    current_user: User = Depends(get_current_user),
    service: QuizService = Depends(get_quiz_service),
):
    results = service.get_results(quiz_id, current_user)
    return success_response([result_to_dict(r) for r in results])
