"""Exam Autograder - API schemas."""
