"""Exam Autograder - HTTP API."""
