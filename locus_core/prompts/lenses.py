"""Lens prompt templates.

A lens is a named analytical mode picked from the selection action menu.
Each template receives the selected passage and the book title and returns
the text of the first user turn of a session. Unknown lens ids (including
``note`` and ``reception``, which have no dedicated template yet) fall back
to the generic analysis template.
"""

from typing import Callable, Dict, List, Optional, Tuple

LensTemplate = Callable[[str, str], str]


def _philology(context: str, book_title: str) -> str:
    return f"""LENS: PHILOLOGY (The Roots)
TASK: Analyze the etymology, original language nuance, or specific word choices in the highlighted text.
CONTEXT: "{context}" (from {book_title})

If the text is a translation, speculate on or identify the original terms (e.g., Greek 'Logos', German 'Dasein').
Explain how the specific words shape the meaning."""


def _intertextuality(context: str, book_title: str) -> str:
    return f"""LENS: INTERTEXTUALITY (The Genealogy)
TASK: Identify who the author is quoting, alluding to, or attacking in this passage.
CONTEXT: "{context}" (from {book_title})

Trace the lineage of the idea. Is this a biblical reference? A nod to Plato? A critique of Hegel?"""


def _history(context: str, book_title: str) -> str:
    return f"""LENS: HISTORY (The Context)
TASK: Place this text in its specific historical, political, or biographical moment.
CONTEXT: "{context}" (from {book_title})

What was happening in the world when this was written? How does the zeitgeist bleed into the text?"""


def _logic(context: str, book_title: str) -> str:
    return f"""LENS: LOGIC (The Argument)
TASK: Reconstruct the formal logical premises and conclusion of the highlighted argument.
CONTEXT: "{context}" (from {book_title})

Format as:
P1: [Premise]
P2: [Premise]
C: [Conclusion]
Then briefly evaluate the validity."""


def _culture(context: str, book_title: str) -> str:
    return f"""LENS: CULTURE (The Encyclopedia)
TASK: Explain any proper names, mythological figures, art references, or obscure geography mentioned.
CONTEXT: "{context}" (from {book_title})"""


def _syntax(context: str, book_title: str) -> str:
    return f"""LENS: SYNTAX (The Deconstruction)
TASK: Break down the sentence structure. Highlight the core Subject-Verb-Object.
CONTEXT: "{context}" (from {book_title})

Help the reader parse the density of the prose."""


def generic_analysis(context: str, book_title: str) -> str:
    return f"""TASK: Analyze the following text with depth and insight.
CONTEXT: "{context}" (from {book_title})"""


LENS_TEMPLATES: Dict[str, LensTemplate] = {
    "philology": _philology,
    "intertextuality": _intertextuality,
    "history": _history,
    "logic": _logic,
    "culture": _culture,
    "syntax": _syntax,
}

# (lens id, menu label), in action-menu order
AVAILABLE_LENSES: List[Tuple[str, str]] = [
    ("note", "Note"),
    ("intertextuality", "Genealogy"),
    ("philology", "Roots"),
    ("history", "Context"),
    ("culture", "Culture"),
    ("logic", "Logic"),
    ("syntax", "Syntax"),
    ("reception", "Reception"),
]


def build_lens_prompt(lens: Optional[str], context: str, book_title: str) -> str:
    template = LENS_TEMPLATES.get((lens or "").lower(), generic_analysis)
    return template(context, book_title)
