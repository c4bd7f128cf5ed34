"""Prompt templates for résumé/job fit scoring."""

SYSTEM_PROMPT = """You are an expert recruiter and hiring manager. Your job is to analyze how well a candidate's resume matches a job description and return ONLY a percentage number between 0-100.

Consider these factors:
- Relevant work experience and skills
- Education and qualifications
- Years of experience in the field
- Technical skills match
- Soft skills alignment
- Industry experience
- Career progression relevance

Return ONLY the percentage number (e.g., "75") with no additional text, explanations, or formatting."""

USER_PROMPT_TEMPLATE = """Job Description:
{job_description}

Candidate Resume:
{resume}

What percentage match is this candidate for this job? Return only the percentage number."""


def build_messages(resume: str, job_description: str) -> list[dict[str, str]]:
    """Chat messages for one résumé/job pair; both texts are embedded verbatim."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {
            "role": "user",
            "content": USER_PROMPT_TEMPLATE.format(job_description=job_description, resume=resume),
        },
    ]
