"""Exam Autograder - exam authoring, delivery and automatic grading."""
