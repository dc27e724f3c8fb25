"""Bilingual coaching feedback for the local evaluation path."""

from __future__ import annotations

from collections.abc import Sequence

# Each template has a ``lead`` sentence, an optional ``missing`` clause that
# is only rendered when there are missing KPIs to cite, and a ``tail``.
FEEDBACK_TEMPLATES: dict[str, dict[int, dict[str, str]]] = {
    "en": {
        3: {
            "lead": "Excellent work! You've covered all the key areas: {detected}.",
            "missing": "",
            "tail": " Your answer demonstrates comprehensive understanding of the topic.",
        },
        2: {
            "lead": "Good effort! You've addressed {detected_pair}, which shows solid understanding.",
            "missing": " Consider also discussing {missing_two} to strengthen your response.",
            "tail": "",
        },
        1: {
            "lead": "Good start! You've mentioned {first_detected}, which is a solid basis.",
            "missing": " To improve, try to incorporate {missing_two} in your answer"
                       " for a more comprehensive response.",
            "tail": "",
        },
        0: {
            "lead": "Your answer needs improvement.",
            "missing": " It could be strengthened by addressing key areas such as {missing_three}.",
            "tail": " Consider providing more specific details and examples"
                    " to demonstrate your understanding.",
        },
    },
    "fi": {
        3: {
            "lead": "Erinomaista työtä! Vastauksesi kattaa kaikki keskeiset osa-alueet: {detected}.",
            "missing": "",
            "tail": " Vastaus osoittaa kattavaa ymmärrystä aiheesta.",
        },
        2: {
            "lead": "Hyvä yritys! Käsittelit osa-alueet {detected_pair}, mikä osoittaa hyvää ymmärrystä.",
            "missing": " Vahvista vastaustasi käsittelemällä myös osa-alueita {missing_two}.",
            "tail": "",
        },
        1: {
            "lead": "Hyvä alku! Mainitsit osa-alueen {first_detected}, mikä on hyvä pohja.",
            "missing": " Parantaaksesi vastausta sisällytä siihen myös {missing_two}.",
            "tail": "",
        },
        0: {
            "lead": "Vastauksesi kaipaa vielä parannusta.",
            "missing": " Voit vahvistaa sitä käsittelemällä keskeisiä osa-alueita, kuten {missing_three}.",
            "tail": " Anna konkreettisia yksityiskohtia ja esimerkkejä osoittaaksesi ymmärryksesi.",
        },
    },
}

_AND = {"en": " and ", "fi": " ja "}


def template_count() -> int:
    """Number of (language, score) templates available."""
    return sum(len(by_score) for by_score in FEEDBACK_TEMPLATES.values())


def generate_feedback(
    detected: Sequence[str],
    missing: Sequence[str],
    score: int,
    language: str = "fi",
) -> str:
    """Render the coaching message for *score* in *language*.

    Unknown languages fall back to English. Out-of-range scores are clamped
    to ``0..3``.
    """
    lang = language if language in FEEDBACK_TEMPLATES else "en"
    template = FEEDBACK_TEMPLATES[lang][max(0, min(3, score))]
    joiner = _AND[lang]

    values = {
        "detected": ", ".join(detected),
        "detected_pair": joiner.join(detected),
        "first_detected": detected[0] if detected else "",
        "missing_two": joiner.join(missing[:2]),
        "missing_three": ", ".join(missing[:3]),
    }

    text = template["lead"].format(**values)
    if missing and template["missing"]:
        text += template["missing"].format(**values)
    text += template["tail"].format(**values)
    return text
