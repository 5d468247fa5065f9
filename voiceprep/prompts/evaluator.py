"""
AI Evaluator Prompt Templates

Contains the prompts used to score a spoken answer and produce an
ideal reference answer with feedback.
"""


class EvaluatorPrompts:
    """
    Prompt templates for AI evaluation of answers.

    Key principles:
    - Objective scoring on a 0-10 scale
    - Identify both strengths and gaps
    - Provide actionable feedback
    - Strict JSON output
    """

    SYSTEM_CONTEXT = (
        "You are a helpful technical interview coach. "
        "Always respond with valid JSON only, no additional text or formatting."
    )

    OUTPUT_FORMAT = """
Return your response as a JSON object with the following structure:
{
  "idealAnswer": "The ideal answer text here...",
  "score": 7.5,
  "strengths": ["Strength 1", "Strength 2", "Strength 3"],
  "missingConcepts": ["Missing concept 1", "Missing concept 2"],
  "suggestions": ["Suggestion 1", "Suggestion 2", "Suggestion 3"]
}
"""

    GUIDELINES = """
Guidelines:
- Score should be between 0-10 (can include decimals)
- Be constructive and encouraging
- Identify at least 2-3 strengths if possible
- Be specific about missing concepts
- Provide actionable, specific suggestions
- The ideal answer should be comprehensive but concise
- Consider the difficulty level when evaluating
"""

    def get_evaluation_prompt(
        self,
        question: str,
        answer: str,
        role: str,
        difficulty: str,
    ) -> str:
        """
        Generate the prompt for evaluating one answer.

        Args:
            question: The interview question
            answer: The candidate's transcribed answer
            role: Target role (e.g. "DevOps Engineer")
            difficulty: Question difficulty level
        """
        return f"""You are an expert technical interviewer specializing in {role} roles.

Question: "{question}"
Difficulty: {difficulty}

User's Answer:
"{answer}"

Your task:
1. Generate an ideal/reference answer for this question (comprehensive, accurate, well-structured)
2. Evaluate the user's answer on a scale of 0-10
3. Identify specific strengths in the user's answer
4. Identify missing concepts or areas for improvement
5. Provide actionable improvement suggestions
{self.OUTPUT_FORMAT}{self.GUIDELINES}"""

    def get_messages(
        self,
        question: str,
        answer: str,
        role: str,
        difficulty: str,
    ) -> list[dict[str, str]]:
        """Chat messages for the evaluation request."""
        return [
            {"role": "system", "content": self.SYSTEM_CONTEXT},
            {
                "role": "user",
                "content": self.get_evaluation_prompt(question, answer, role, difficulty),
            },
        ]
