"""Prompt templates for the chat completions collaborator."""

# --- Answer evaluation ---

EVALUATION_SYSTEM_PROMPT = "You are a technical interviewer grading candidate answers."

EVALUATION_USER_PROMPT = """
Grade the candidate's answer to a technical interview question.

**Question:** {question}

**Reference Answer:** {correct_answer}

**Candidate Answer:** {user_answer}

**Background:** {explanation}

Reply with JSON only, using this structure:
{{
    "correct": true or false,
    "similarityScore": number from 0 to 100,
    "feedback": "why the answer is right or wrong",
    "correctParts": "concepts the candidate got right",
    "incorrectParts": "concepts missing or wrong",
    "improvementSuggestions": "how to improve the answer"
}}

Judge technical accuracy, completeness and depth. Be specific and constructive.
"""

# --- Question generation ---

GENERATION_SYSTEM_PROMPT = "You write technical interview questions from study material."

GENERATION_USER_PROMPT = """
Write one technical interview question based on this material:

{content}

Requirements:
- Difficulty: {difficulty}
- One clear question
- Options for multiple choice questions, with the correct answer copied verbatim from the options
- The correct answer
- A short explanation

Reply with JSON only, using this structure:
{{
    "question": "...",
    "type": "MULTIPLE_CHOICE|TRUE_FALSE|SHORT_ANSWER|SCENARIO_BASED",
    "options": ["...", "..."],
    "correctAnswer": "...",
    "explanation": "..."
}}
"""
