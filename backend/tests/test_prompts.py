"""
Unit tests for prompt compilation.
"""

from tutor.services.prompts import (
    compile_answer_prompt,
    compile_expansion_prompt,
    get_grade_description,
    get_language_instruction,
)


def test_grade_description():
    assert get_grade_description(8) == "Class 8 (ages 13-14)"
    assert get_grade_description(None) == "the appropriate class level"


def test_language_instruction():
    assert get_language_instruction(None) == "Respond in English."
    assert "Tamil" in get_language_instruction("ta")
    assert "xx" in get_language_instruction("xx")


def test_answer_prompt_embeds_context_verbatim():
    context = "Force is a push or pull.\n\nFriction opposes motion."
    prompt = compile_answer_prompt("What is force?", context, grade=8)
    assert context in prompt
    assert "Class 8" in prompt
    assert prompt.rstrip().endswith("Answer:")


def test_expansion_prompt():
    prompt = compile_expansion_prompt("What is force?", 6)
    assert '"What is force?"' in prompt
    assert "Class 6" in prompt
