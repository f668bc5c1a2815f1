"""Exam Autograder - API v1 Router."""
from fastapi import APIRouter

from autograder.api.v1.quizzes import router as quizzes_router
from autograder.api.v1.student import router as student_router
from autograder.api.v1.teacher import router as teacher_router

api_router = APIRouter()

api_router.include_router(quizzes_router)
api_router.include_router(student_router)
api_router.include_router(teacher_router)
