"""Exam Autograder - Core infrastructure."""
