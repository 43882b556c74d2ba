# speaking_practice/prompts/__init__.py
"""
Prompts package for passage speaking practice
Contains the tutor system instruction and the grading prompt
"""

from .tutor_prompts import BASE_TUTOR_INSTRUCTIONS, build_system_instruction, format_numbered_questions
from .grading_prompts import (
    GRADING_SYSTEM_INSTRUCTION, SCORE_FIELDS, FEEDBACK_FIELDS, create_grading_prompt
)

__all__ = [
    "BASE_TUTOR_INSTRUCTIONS", "build_system_instruction", "format_numbered_questions",
    "GRADING_SYSTEM_INSTRUCTION", "SCORE_FIELDS", "FEEDBACK_FIELDS", "create_grading_prompt"
]
