"""
Passage Speaking Practice Server
Realtime tutoring sessions over a reading passage, graded and stored when the learner finishes
"""

__version__ = "1.0.0"
__author__ = "Voice Learning Team"
__description__ = "Passage discussion practice with a realtime voice tutor and post-session grading"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
    "__description__"
]
