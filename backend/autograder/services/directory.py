"""
Exam Autograder - Student Directory
"""
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from autograder.core.exceptions import ValidationError
from autograder.models.student import Student

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return (email or "").strip().lower()


class StudentDirectory:
    """Idempotent student lookup keyed by email."""
    
    def __init__(self, db: AsyncSession):
        self.db = db
    
    async def get_by_email(self, email: str) -> Student | None:
        result = await self.db.execute(
            select(Student).where(Student.email == normalize_email(email))
        )
        return result.scalar_one_or_none()
    
    async def find_or_create_by_email(self, email: str, name: str) -> Student:
        """
        Return the student for ``email``, creating one on first sight.
        
        Must be the first write of its unit of work: a lost insert race
        rolls the session back before re-reading.
        
        Raises:
            ValidationError: If email or name is blank
        """
        key = normalize_email(email)
        if not key:
            raise ValidationError("Student email is required")
        if not name or not name.strip():
            raise ValidationError("Student name is required")
        
        student = await self.get_by_email(key)
        if student is not None:
            return student
        
        student = Student(name=name.strip(), email=key)
        self.db.add(student)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            student = await self.get_by_email(key)
            if student is None:
                raise
            return student
        
        logger.info("Registered student %s", key)
        return student
