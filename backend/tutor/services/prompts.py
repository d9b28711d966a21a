"""
Prompt Compiler

Turns the question, retrieved context and grade/language hints into the
instruction prompts sent to the expansion and answer models.
"""

# Language codes accepted as language hints; anything else is passed through
LANGUAGE_NAMES = {
    "en": "English",
    "hi": "Hindi",
    "ta": "Tamil",
    "bn": "Bengali",
    "te": "Telugu",
    "mr": "Marathi",
    "gu": "Gujarati",
    "kn": "Kannada",
    "ml": "Malayalam",
    "pa": "Punjabi",
    "ur": "Urdu",
    "or": "Odia",
    "as": "Assamese",
    "sa": "Sanskrit",
}


def get_grade_description(grade: int | None) -> str:
    """Convert a grade number to a human-readable class description."""
    if grade is None:
        return "the appropriate class level"
    # Students usually start Class 1 at age 6
    return f"Class {grade} (ages {grade + 5}-{grade + 6})"


def get_tone_instruction(grade: int | None) -> str:
    """Get a tone directive matching the student's grade."""
    if grade is None:
        return "Use clear language suitable for a school student."
    if grade <= 5:
        return "Use very simple words and short sentences. Explain with everyday examples."
    elif grade <= 8:
        return "Use simple, friendly language. Introduce subject terms with a short explanation."
    else:
        return "You may use proper subject terminology and formulas, explained step by step."


def get_language_instruction(language: str | None) -> str:
    """Get the response-language directive for a language hint."""
    if not language or language == "en":
        return "Respond in English."
    name = LANGUAGE_NAMES.get(language, language)
    return f"Respond in {name} (language code: {language}). Keep numbers, formulas, and proper nouns unchanged."


def compile_expansion_prompt(question: str, grade: int | None = None) -> str:
    """Build the prompt asking for 2-3 rephrasings of a question."""
    grade_text = f"Class {grade}" if grade else "appropriate grade level"
    return f"""You are an AI tutor. Given a student question, generate 2-3 expanded/rephrased versions that would help find better educational content.

Original question: "{question}"
Grade level: {grade_text}

Generate variations that:
1. Use more specific educational terminology
2. Include related concepts from the same topic
3. Add context about the grade level
4. Use synonyms and alternative phrasings

Return only the expanded questions, one per line, without numbering or explanations."""


def compile_answer_prompt(
    question: str,
    context: str,
    grade: int | None = None,
    language: str | None = None,
) -> str:
    """
    Build the grounded answer prompt.

    Args:
        question: The student's original question
        context: Retrieved curriculum text, embedded verbatim
        grade: Optional grade hint for tone
        language: Optional language hint for the response language

    Returns:
        Prompt string for the answer model
    """
    grade_desc = get_grade_description(grade)
    tone_instruction = get_tone_instruction(grade)
    language_instruction = get_language_instruction(language)

    prompt = f"""You are an AI tutor for {grade_desc} students.
Use only the following context to answer the question.
If the context doesn't contain enough information, say so clearly instead of guessing.

{language_instruction}
{tone_instruction}

Structure the answer as: brief concept, step-by-step explanation, 1-2 examples, short recap.

Context:
{context}

Question:
{question}

Answer:"""

    return prompt.strip()
