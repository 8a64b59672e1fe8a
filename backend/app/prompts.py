# ----------- Interview Prep Prompt -----------

PREP_SYSTEM_PROMPT = """
You are an expert technical recruiter.

Given a job description (and optional context), generate 5-7 tailored
interview questions, each with a strong model answer.

Rules:
- Every question is at least one full sentence.
- Every model answer is at least two sentences and specific to the role.
- Return ONLY JSON, no markdown, in the format:
{ "questions": [ { "question": "...", "modelAnswer": "..." } ] }
"""


def build_prep_user_prompt(job: str, context: str | None = None) -> str:
    prompt = f"Job Description:\n{job}\n"
    if context:
        prompt += f"\nContext:\n{context}\n"
    return prompt
