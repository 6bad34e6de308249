"""
Gemini-backed interview assistant.

Every public function either returns parsed model output or raises
AIServiceError; callers decide which static fallback to use.
"""
import json
import logging
import random
import re
from typing import List, Optional

import requests

from backend import config

logger = logging.getLogger(__name__)


class AIServiceError(Exception):
    pass


# ---------------- Static fallbacks ----------------
DEFAULT_EVALUATION = {
    "score": 5,
    "feedback": "Answer submitted successfully. Evaluation pending.",
    "criteria": {
        "technical_accuracy": 5,
        "communication": 5,
        "problem_solving": 5,
        "confidence": 5,
    },
}

DEFAULT_ANALYSIS = {
    "sentiment": "neutral",
    "confidence_level": "medium",
    "clarity_score": 5,
    "keywords": [],
    "communication_quality": "fair",
}

DEFAULT_OVERALL_FEEDBACK = {
    "overall_assessment": "Unable to generate comprehensive feedback due to system error.",
    "strengths": ["Participated in the interview"],
    "improvements": ["Review technical concepts", "Practice communication skills"],
    "recommendation": "neutral",
    "technical_feedback": "Please review the individual question feedback for details.",
}


def fallback_question(skill: str) -> dict:
    return {
        "question": f"Explain your experience with {skill} and provide examples of projects where you used it.",
        "expectedAnswer": (
            f"The candidate should discuss practical applications of {skill}, "
            "specific projects, challenges faced, and solutions implemented."
        ),
        "evaluationCriteria": "",
    }


def fallback_questions(skills: List[str], question_count: int) -> List[dict]:
    return [fallback_question(s) for s in skills[:question_count]]


def fallback_suggestions(duration: int, interview_type: str) -> List[dict]:
    """Canned interviewer hints keyed on elapsed seconds and interview type."""
    duration = duration or 0
    if duration < 300:
        out = [
            {"type": "follow_up", "priority": "medium",
             "content": "Ask the candidate to elaborate on their background and experience with the key technologies."},
            {"type": "assessment", "priority": "low",
             "content": "Observe the candidate's communication style and confidence level in their responses."},
        ]
    elif duration < 900:
        out = [
            {"type": "next_question", "priority": "high",
             "content": "Consider asking a practical coding or problem-solving question to assess technical skills."},
            {"type": "follow_up", "priority": "medium",
             "content": "Ask about specific challenges they've faced and how they overcame them."},
        ]
    elif duration < 1800:
        out = [
            {"type": "assessment", "priority": "high",
             "content": "Evaluate the candidate's problem-solving approach and technical depth."},
            {"type": "follow_up", "priority": "medium",
             "content": "Ask about their experience working in teams and handling conflicts."},
        ]
    else:
        out = [
            {"type": "next_question", "priority": "medium",
             "content": "Consider asking about their career goals and how this role fits their aspirations."},
            {"type": "assessment", "priority": "high",
             "content": "Wrap up by assessing overall cultural fit and ask if they have questions about the role."},
        ]

    if interview_type == "technical":
        out += [
            {"type": "next_question", "priority": "high",
             "content": "Ask them to walk through their approach to debugging a complex issue."},
            {"type": "follow_up", "priority": "medium",
             "content": "Inquire about their experience with code reviews and best practices."},
        ]
    elif interview_type == "behavioral":
        out += [
            {"type": "next_question", "priority": "medium",
             "content": "Ask about a time they had to learn a new technology quickly."},
            {"type": "follow_up", "priority": "medium",
             "content": "Explore how they handle feedback and continuous learning."},
        ]
    return out


def pick_fallback_suggestion(duration: int, interview_type: str) -> dict:
    return random.choice(fallback_suggestions(duration, interview_type))


# ---------------- Gemini call ----------------
def call_gemini(prompt: str, temperature: float = 0.7, max_tokens: int = 2000, as_json: bool = False) -> str:
    """POST a single-turn prompt to Gemini's generateContent endpoint and return the text part."""
    if not config.GEMINI_API_KEY:
        raise AIServiceError("GEMINI_API_KEY is not configured")

    headers = {"Content-Type": "application/json"}
    api_url = f"{config.GEMINI_API_URL}?key={config.GEMINI_API_KEY}"
    generation_config = {"temperature": temperature, "maxOutputTokens": max_tokens}
    if as_json:
        generation_config["responseMimeType"] = "application/json"
    payload = {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": generation_config,
    }

    try:
        response = requests.post(api_url, headers=headers, data=json.dumps(payload),
                                 timeout=config.AI_TIMEOUT_SECONDS)
        response.raise_for_status()
        result = response.json()
    except (requests.exceptions.RequestException, ValueError) as e:
        logger.error("Gemini API request error: %s", e)
        raise AIServiceError(f"Gemini request failed: {e}") from e

    try:
        return result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        logger.error("Gemini response structure invalid: %s", result)
        raise AIServiceError("Gemini returned no text")


def _load_json(text: str) -> dict:
    # models sometimes wrap JSON in a markdown fence
    cleaned = re.sub(r"^```(?:json)?\s*|\s*```$", "", text.strip())
    try:
        data = json.loads(cleaned)
    except ValueError as e:
        raise AIServiceError(f"Malformed JSON from model: {e}") from e
    if not isinstance(data, dict):
        raise AIServiceError("Expected a JSON object from model")
    return data


# ---------------- Parsers ----------------
def parse_questions(content: str) -> List[dict]:
    questions = []
    for block in content.split("---"):
        if not block.strip():
            continue
        question = expected = criteria = ""
        for line in block.strip().split("\n"):
            line = line.strip()
            if line.startswith("Q:"):
                question = line[2:].strip()
            elif line.startswith("Expected:"):
                expected = line[9:].strip()
            elif line.startswith("Criteria:"):
                criteria = line[9:].strip()
        if question:
            questions.append({"question": question, "expectedAnswer": expected, "evaluationCriteria": criteria})
    return questions


def _score(line: str) -> int:
    m = re.match(r"\s*(\d+)", line.split(":", 1)[1])
    if not m:
        return 5
    return int(m.group(1))


_CRITERIA_PREFIXES = {
    "Technical Accuracy:": "technical_accuracy",
    "Communication:": "communication",
    "Problem Solving:": "problem_solving",
    "Confidence:": "confidence",
}


def parse_evaluation(content: str) -> dict:
    evaluation = {
        "score": 5,
        "criteria": {"technical_accuracy": 5, "communication": 5, "problem_solving": 5, "confidence": 5},
        "feedback": "",
    }
    feedback_started = False
    feedback_lines = []

    for line in content.split("\n"):
        trimmed = line.strip()
        prefix = next((p for p in _CRITERIA_PREFIXES if trimmed.startswith(p)), None)
        if trimmed.startswith("Score:"):
            evaluation["score"] = _score(trimmed)
        elif prefix:
            evaluation["criteria"][_CRITERIA_PREFIXES[prefix]] = _score(trimmed)
        elif trimmed.startswith("Feedback:"):
            feedback_started = True
            feedback_lines.append(trimmed[9:])
        elif feedback_started and trimmed:
            feedback_lines.append(trimmed)

    evaluation["score"] = max(0, min(10, evaluation["score"]))
    for k, v in evaluation["criteria"].items():
        evaluation["criteria"][k] = max(0, min(10, v))
    evaluation["feedback"] = " ".join(feedback_lines).strip()
    return evaluation


# ---------------- Operations ----------------
def generate_questions(skills: List[str], resume_content: str = "", difficulty: str = "intermediate",
                       question_count: int = 5, question_type: str = "technical",
                       experience: str = "fresher") -> List[dict]:
    resume_block = f"Resume content to consider:\n{resume_content}\n" if resume_content else ""
    prompt = f"""
You are an expert technical interviewer. Generate relevant, challenging, and fair interview questions.

Generate {question_count} {difficulty} level {question_type} interview questions for a {experience} candidate.

Skills to focus on: {', '.join(skills)}

{resume_block}
Requirements:
- Questions should be relevant to the candidate's experience level
- Focus on practical problem-solving
- Include both conceptual and implementation questions
- Ensure questions test real-world scenarios
- Vary difficulty within the specified level

Format each question as:
Q: [Question text]
Expected: [Expected answer outline]
Criteria: [Evaluation criteria]

---
"""
    questions = parse_questions(call_gemini(prompt, temperature=0.7, max_tokens=2000))
    if not questions:
        raise AIServiceError("No questions could be parsed from model output")
    return questions[:question_count]


def evaluate_answer(question: str, answer: str, expected_answer: Optional[str] = None) -> dict:
    expected_line = f"Expected Answer: {expected_answer}" if expected_answer else ""
    prompt = f"""
You are an expert interviewer evaluating candidate responses. Provide fair, constructive feedback with scores.

Question: {question}
{expected_line}
Candidate's Answer: {answer}

Provide evaluation in this format:
Score: [0-10]
Technical Accuracy: [0-10]
Communication: [0-10]
Problem Solving: [0-10]
Confidence: [0-10]

Feedback: [Detailed constructive feedback highlighting strengths and areas for improvement]
"""
    return parse_evaluation(call_gemini(prompt, temperature=0.3, max_tokens=1000))


def analyze_response(answer_text: str) -> dict:
    prompt = f"""
Analyze the following interview response and provide sentiment (positive, neutral, negative),
confidence level (high, medium, low), clarity score (1-10), key technical keywords mentioned and
communication quality (excellent, good, fair, poor).

Response: {answer_text}

Return only JSON:
{{"sentiment": "...", "confidence_level": "...", "clarity_score": 0, "keywords": ["..."], "communication_quality": "..."}}
"""
    data = _load_json(call_gemini(prompt, temperature=0.2, max_tokens=500, as_json=True))
    return {**DEFAULT_ANALYSIS, **data}


def generate_follow_up(original_question: str, candidate_answer: str) -> List[str]:
    prompt = f"""
Based on the following interview question and candidate's response, generate 1-2 relevant follow-up questions to probe deeper:

Original Question: {original_question}
Candidate's Answer: {candidate_answer}

Return only the follow-up questions, one per line.
"""
    content = call_gemini(prompt, temperature=0.6, max_tokens=300)
    return [line.strip() for line in content.split("\n") if line.strip()]


def generate_overall_feedback(questions: List[dict], skills: List[str]) -> dict:
    lines = []
    for i, q in enumerate(questions, 1):
        answer = (q.get("answer") or {}).get("text") or "No answer provided"
        score = (q.get("evaluation") or {}).get("score", "Not scored")
        lines.append(f"Q{i}: {q.get('question')}\nAnswer: {answer}\nScore: {score}/10")
    prompt = f"""
Generate comprehensive interview feedback for a candidate based on their performance:

Candidate Skills: {', '.join(skills)}
Number of Questions: {len(questions)}

Questions and Responses:
{chr(10).join(lines)}

Return only JSON:
{{
  "overall_assessment": "2-3 sentences",
  "strengths": ["...", "...", "..."],
  "improvements": ["...", "...", "..."],
  "recommendation": "strongly_recommend | recommend | neutral | not_recommend | strongly_not_recommend",
  "technical_feedback": "..."
}}
"""
    data = _load_json(call_gemini(prompt, temperature=0.4, max_tokens=1500, as_json=True))
    return {**DEFAULT_OVERALL_FEEDBACK, **data}


def generate_interviewer_suggestion(skills: str, interview_type: str, duration: int,
                                    notes: str = "", context: str = "") -> dict:
    prompt = f"""
You are assisting a human interviewer during a live {interview_type} interview.
Skills being assessed: {skills}
Elapsed time: {duration // 60 if duration else 0} minutes
Interviewer notes: {notes or 'none'}
Current context: {context or 'none'}

Suggest the single most useful next step. Return only JSON:
{{"type": "follow_up | next_question | assessment", "content": "...", "priority": "low | medium | high"}}
"""
    data = _load_json(call_gemini(prompt, temperature=0.6, max_tokens=300, as_json=True))
    if not data.get("content"):
        raise AIServiceError("Suggestion without content")
    return data
