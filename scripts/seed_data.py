#!/usr/bin/env python3
"""
Seed a fresh database with demo accounts, lessons and a quiz.

Security behavior:
- If VIDYASETU_SEED_PASSWORD is set, every demo account uses it (min length: 12).
- Otherwise, a cryptographically random password is generated and printed once.
"""

import os
import secrets
import string
import sys
from pathlib import Path

# Add project root to path so the script runs from a plain checkout
script_dir = Path(__file__).parent
project_root = script_dir.parent
sys.path.insert(0, str(project_root))

from vidyasetu.core.models import (
    ContentType,
    Difficulty,
    Grade,
    QuestionType,
    Subject,
    User,
    UserRole,
)
from vidyasetu.core.security import hash_password
from vidyasetu.core.services.content_service import ContentService
from vidyasetu.core.services.database import DatabaseService
from vidyasetu.core.services.quiz_service import QuizService

DEMO_USERS = [
    ("Admin User", "admin@demo.vidyasetu.in", UserRole.ADMIN, None),
    ("Asha Teacher", "teacher@demo.vidyasetu.in", UserRole.TEACHER, None),
    ("Ravi Student", "student@demo.vidyasetu.in", UserRole.STUDENT, "8"),
]


def _generate_password(length: int = 20) -> str:
    # Satisfies the registration policy: upper, lower, digit and special
    alphabet = string.ascii_letters + string.digits + "!@#$%^&*()-_=+"
    core = [
        secrets.choice(string.ascii_uppercase),
        secrets.choice(string.ascii_lowercase),
        secrets.choice(string.digits),
        secrets.choice("!@#$%^&*"),
    ]
    return "".join(core + [secrets.choice(alphabet) for _ in range(length - 4)])


def _resolve_password() -> tuple[str, bool]:
    configured = os.getenv("VIDYASETU_SEED_PASSWORD", "").strip()
    if configured:
        if len(configured) < 12:
            raise ValueError("VIDYASETU_SEED_PASSWORD must be at least 12 characters.")
        return configured, True
    return _generate_password(), False


def _ensure_user(session, name, email, role, grade, password) -> User:
    user = session.query(User).filter(User.email == email).first()
    if user:
        print(f"  {email} already exists, skipping.")
        return user
    user = User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
        grade=grade,
        school="Government Model School",
        location="Pune",
    )
    session.add(user)
    session.commit()
    print(f"  Created {role.value}: {email}")
    return user


def seed_data() -> int:
    print("Seeding database with demo data...")

    db_service = DatabaseService()
    session = db_service.get_session()

    try:
        password, password_from_env = _resolve_password()
        users = {
            role: _ensure_user(session, name, email, role, grade, password)
            for name, email, role, grade in DEMO_USERS
        }
        teacher = users[UserRole.TEACHER]

        content_service = ContentService(session)
        quiz_service = QuizService(session)

        if content_service.list_content(viewer=teacher, created_by=teacher.id).total:
            print("Demo content already present, skipping lessons and quiz.")
        else:
            lesson = content_service.create_content(
                teacher,
                title="Solving Linear Equations",
                description="Isolate the variable step by step in one-variable equations.",
                subject=Subject.MATHEMATICS,
                grade=Grade.GRADE_8,
                content_type=ContentType.TEXT,
                text_content="To solve 2x + 3 = 11, subtract 3 from both sides, then divide by 2.",
                duration=15,
                tags="algebra, equations",
                difficulty=Difficulty.BEGINNER,
            )
            content_service.toggle_publish(lesson.id, teacher)

            quiz = quiz_service.create_quiz(
                teacher,
                title="Algebra Basics",
                description="Check your understanding of linear equations.",
                subject=Subject.MATHEMATICS,
                grade=Grade.GRADE_8,
                related_content_id=lesson.id,
                tags="algebra",
                questions=[
                    {
                        "question_text": "Solve for x: 2x + 3 = 11",
                        "question_type": QuestionType.MCQ,
                        "options": [
                            {"text": "x = 4", "is_correct": True},
                            {"text": "x = 7", "is_correct": False},
                        ],
                        "correct_answer": "x = 4",
                        "explanation": "Subtract 3, then divide by 2.",
                    },
                    {
                        "question_text": "Zero is an even number.",
                        "question_type": QuestionType.TRUE_FALSE,
                        "options": [
                            {"text": "True", "is_correct": True},
                            {"text": "False", "is_correct": False},
                        ],
                        "correct_answer": "True",
                    },
                    {
                        "question_text": "Simplify: 3x + 5x",
                        "question_type": QuestionType.SHORT_ANSWER,
                        "correct_answer": "8x",
                    },
                ],
            )
            quiz_service.toggle_publish(quiz.id, teacher)
            print(f"  Created lesson '{lesson.title}' and quiz '{quiz.title}'")

        print("[OK] Demo data ready.")
        if password_from_env:
            print("  Password: (from VIDYASETU_SEED_PASSWORD)")
        else:
            print(f"  Generated Password (all new demo accounts): {password}")
        return 0

    except Exception as e:
        print(f"[FAIL] Error seeding data: {e}")
        import traceback

        traceback.print_exc()
        session.rollback()
        return 1
    finally:
        session.close()
        db_service.close()


if __name__ == "__main__":
    raise SystemExit(seed_data())
