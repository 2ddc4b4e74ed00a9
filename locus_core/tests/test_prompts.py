import pytest

from locus_core.prompts import AVAILABLE_LENSES, build_lens_prompt, load_system_prompt


def test_system_prompt_persona():
    prompt = load_system_prompt()
    assert prompt.startswith('You are "The Passionate Professor,"')
    assert "under 200 words" in prompt


@pytest.mark.parametrize(
    "lens, marker",
    [
        ("philology", "LENS: PHILOLOGY"),
        ("intertextuality", "LENS: INTERTEXTUALITY"),
        ("history", "LENS: HISTORY"),
        ("logic", "P1: [Premise]"),
        ("culture", "LENS: CULTURE"),
        ("syntax", "LENS: SYNTAX"),
    ],
)
def test_lens_templates(lens, marker):
    prompt = build_lens_prompt(lens, "Dasein", "Being and Time")
    assert marker in prompt
    assert 'CONTEXT: "Dasein" (from Being and Time)' in prompt


@pytest.mark.parametrize("lens", ["note", "reception", None, "bogus"])
def test_unknown_lens_falls_back_to_generic(lens):
    prompt = build_lens_prompt(lens, "Dasein", "Being and Time")
    assert prompt.startswith("TASK: Analyze the following text with depth and insight.")


def test_available_lenses_menu_order():
    assert [lens for lens, _ in AVAILABLE_LENSES][:3] == ["note", "intertextuality", "philology"]
