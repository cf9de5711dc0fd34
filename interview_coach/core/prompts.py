from typing import Iterable, Union

from interview_coach.schemas.interview import InterviewType, Level

OPENING_MESSAGE = "Start the interview."

CLOSING_APOLOGY = (
    "I'm sorry, I'm having trouble connecting right now. Let's end the interview "
    "here and you can review the results so far."
)

JSON_OBJECT_ONLY = "Your response must be a valid JSON object only, with no additional text or explanations."


def format_interview_rounds(interview_types: Iterable[Union[InterviewType, str]]) -> str:
    """Join round names the way the interviewer announces them ("behavioral and technical")."""
    return " and ".join(
        t.value if isinstance(t, InterviewType) else str(t) for t in interview_types
    )


def generate_interviewer_instruction(role: str, interview_types: Iterable[Union[InterviewType, str]]) -> str:
    """
    System framing for the conversational interviewer.

    Args:
        role: The target role the candidate is interviewing for.
        interview_types: The rounds selected for this session.

    Returns:
        The system instruction string.
    """
    rounds = format_interview_rounds(interview_types)
    return (
        "You are a friendly but professional interviewer. Your goal is to conduct a mock interview "
        f"for a candidate aspiring to be a '{role}'.\n"
        f"The interview will cover the following rounds: {rounds}.\n"
        "Ask insightful questions one by one based on these topics.\n"
        "If the candidate seems to be struggling with a question, try asking a simpler follow-up "
        "question to help them demonstrate their knowledge.\n"
        "Start with an introductory question. Keep your questions concise."
    )


def generate_evaluation_prompt(role: str, transcript_text: str, with_images: bool) -> str:
    """
    Prompt for the structured evaluation call.

    Args:
        role: The target role.
        transcript_text: Transcript serialized as "speaker: text" lines.
        with_images: Whether still frames of the candidate accompany the prompt.
    """
    visual = (
        ", and the series of images captured while they were speaking" if with_images else ""
    )
    confidence_hint = (
        "based on both their answers and their facial expressions/body language in the images"
        if with_images else "inferred from their answers"
    )
    non_verbal = (
        ", and non-verbal cues from the images (e.g., eye contact, engagement)" if with_images else ""
    )
    return (
        f"Based on the following interview transcript for a candidate aspiring to be a '{role}'"
        f"{visual}, please evaluate their performance.\n\n"
        f"Transcript:\n{transcript_text}\n\n"
        "Provide a detailed evaluation based on the candidate's answers.\n"
        "- Assess their technical knowledge and problem-solving skills from their verbal answers.\n"
        f"- Assess their confidence {confidence_hint}.\n"
        "- Analyze their communication style, including clarity, conciseness, use of filler words"
        f"{non_verbal}.\n"
        "- Finally, assign a level: 'Beginner', 'Intermediate', or 'Advanced'.\n\n"
        "Return a JSON object with the keys \"summary\", \"knowledge\", \"skills\", "
        "\"confidence\", \"communication\" and \"level\"."
    )


_LEVEL_FOCUS = {
    Level.BEGINNER: "focus on fundamental concepts",
    Level.INTERMEDIATE: "focus on deepening knowledge and practical skills",
    Level.ADVANCED: "focus on specialized topics, system design, and leadership",
}


def generate_roadmap_prompt(level: Level, role: str) -> str:
    """Prompt for a 5-7 step learning roadmap tuned to the evaluated level."""
    return (
        f"A candidate for a '{role}' role has been evaluated as '{level.value}'. Create a comprehensive, "
        "personalized learning roadmap for them with 5-7 key steps.\n"
        f"Since the level is '{level.value}', {_LEVEL_FOCUS[level]}.\n\n"
        "Return a JSON array where each object represents a roadmap item with:\n"
        "1. \"title\": A concise title for the learning topic.\n"
        "2. \"description\": A short, clear explanation of the topic and its importance.\n"
        "3. \"key_concepts\": An array of 3-5 crucial sub-topics or concepts to master.\n"
        "4. \"project\": A small, practical project idea to apply the learned skills.\n"
        "5. \"resources\": An array of 2-3 diverse, high-quality online resources. For each resource, "
        "specify a \"title\", a \"url\", and a \"type\" from: 'article', 'video', 'docs', or 'interactive'."
    )


def generate_resume_score_prompt(resume_text: str, job_description: str) -> str:
    """Prompt for scoring a resume against a job description."""
    return (
        "As an expert hiring manager, analyze the following resume against the job description.\n"
        "Provide a score from 0 to 100 indicating how well the resume matches the job description.\n"
        "Also, provide a brief summary of the candidate's key strengths and areas for improvement.\n\n"
        f"Resume:\n{resume_text}\n\n"
        f"Job Description:\n{job_description}\n\n"
        "Return a JSON object with the keys \"score\" (a number between 0 and 100), "
        "\"strengths\" and \"weaknesses\"."
    )
