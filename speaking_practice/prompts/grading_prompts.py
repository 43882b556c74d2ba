"""
Grading prompt for completed conversation transcripts
"""

from typing import List

GRADING_SYSTEM_INSTRUCTION = (
    "You are an expert English language evaluator. "
    "Provide detailed, constructive feedback in valid JSON format only."
)

SCORE_FIELDS = [
    "comprehensionScore",
    "fluencyScore",
    "lexicalScore",
    "grammaticalScore",
    "pronunciationScore",
    "responsivenessScore",
    "overallScore",
]

FEEDBACK_FIELDS = [
    "comprehensionFeedback",
    "fluencyFeedback",
    "lexicalFeedback",
    "grammaticalFeedback",
    "pronunciationFeedback",
    "responsivenessFeedback",
]

OVERALL_FEEDBACK_FIELD = "overallFeedback"


def create_grading_prompt(transcript: str, passage_content: str, question_texts: List[str]) -> str:
    """Build the evaluation request for one transcript"""
    if question_texts:
        questions_block = "\n".join(f"- {text}" for text in question_texts)
    else:
        questions_block = "No specific questions"

    return f"""You are an expert English language evaluator. Evaluate the following conversation transcript where a student discussed a reading passage.

PASSAGE:
{passage_content}

QUESTIONS ASKED:
{questions_block}

CONVERSATION TRANSCRIPT:
{transcript}

Evaluate the student's performance on the following criteria (score each from 0-100):

1. COMPREHENSION: How well did the student understand the passage content?
2. FLUENCY: How smoothly and naturally did the student speak?
3. LEXICAL RESOURCE: Vocabulary range and appropriate word choice
4. GRAMMATICAL ACCURACY: Correct use of grammar structures
5. PRONUNCIATION: Clarity and correctness of pronunciation (infer from transcript quality)
6. RESPONSIVENESS: How well did the student answer questions and stay on topic?

Provide your response in the following JSON format:
{{
  "comprehensionScore": <0-100>,
  "fluencyScore": <0-100>,
  "lexicalScore": <0-100>,
  "grammaticalScore": <0-100>,
  "pronunciationScore": <0-100>,
  "responsivenessScore": <0-100>,
  "overallScore": <0-100>,
  "comprehensionFeedback": "<specific feedback>",
  "fluencyFeedback": "<specific feedback>",
  "lexicalFeedback": "<specific feedback>",
  "grammaticalFeedback": "<specific feedback>",
  "pronunciationFeedback": "<specific feedback>",
  "responsivenessFeedback": "<specific feedback>",
  "overallFeedback": "<general summary>"
}}

Be specific and constructive in your feedback. Focus on what the student did well and areas for improvement."""
