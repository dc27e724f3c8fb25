"""Static bilingual (English/Finnish) synonym table for KPI names.

Keys are short canonical fragments matched as substrings of the lowercased KPI
name; values are stems and phrases matched as substrings of the answer. Many
entries are stems ("collaborat", "ratkai") so that inflected Finnish and
English forms hit without a tokenizer. Declaration order matters: the first
key contained in the KPI name wins, so specific keys ("risk") precede
generic ones ("management").
"""

from __future__ import annotations

_RISK = (
    "risk", "threat", "uncertaint", "mitigat", "contingency", "backup plan",
    "what could go wrong", "riski", "uhka", "uhkia", "epävarmuu",
    "varasuunnitel", "ennaltaehkäi",
)
_LEADERSHIP = (
    "lead", "leader", "manage", "direct", "guide", "motivat", "inspir",
    "mentor", "coach", "johta", "ohja", "esihenkilö", "esimie", "motivoi",
    "innost", "valmen",
)
_TEAMWORK = (
    "team", "together", "collaborat", "cooperat", "colleague", "jointly",
    "tiimi", "yhdessä", "yhteistyö", "kollega", "työtoveri",
)
_COMMUNICATION = (
    "communicat", "inform", "discuss", "present", "report", "listen",
    "dialogue", "meeting", "feedback", "viestin", "tiedot", "keskustel",
    "kuuntel", "raportoi", "palaveri", "palaute",
)
_PROBLEM_SOLVING = (
    "problem", "solve", "solution", "resolv", "root cause", "troubleshoot",
    "fix", "analys", "analyz", "ongelm", "ratkai", "juurisy", "korja",
    "selvit",
)
_STAKEHOLDER = (
    "stakeholder", "client", "customer", "sponsor", "end user", "steering",
    "sidosryhm", "asiaka", "tilaaja", "käyttäj", "ohjausryhm",
)
_CONFLICT = (
    "conflict", "disagree", "dispute", "negotiat", "mediat", "compromise",
    "ristiriit", "konflikt", "erimielisyy", "neuvottel", "sovitel",
)
_PLANNING = (
    "plan", "schedul", "timeline", "milestone", "roadmap", "estimat",
    "suunnit", "aikataul", "virstanpyl", "arvioi",
)
_QUALITY = (
    "quality", "standard", "review", "test", "verif", "audit",
    "laatu", "tarkast", "testa", "standardi",
)
_CHANGE = (
    "change", "transition", "transform", "adapt",
    "muutos", "muutok", "siirtym", "mukautu",
)
_BUDGET = (
    "budget", "cost", "expens", "financ", "resourc",
    "budjet", "kustannu", "talou", "resurss",
)
_TIME = (
    "deadline", "schedul", "prioriti", "on time", "time box",
    "aikataul", "määräai", "priorisoi", "ajallaan",
)
_DECISION = (
    "decid", "decision", "choose", "choice", "judg",
    "päätö", "päätt", "valin", "valits",
)
_ETHICS = (
    "ethic", "integrity", "honest", "transparen", "responsib",
    "etiik", "eettis", "rehellis", "läpinäky", "vastuu",
)
_MANAGEMENT = (
    "manage", "coordinat", "organiz", "organis", "control", "oversee",
    "monitor", "hallin", "koordin", "organisoi", "valvo", "seura",
)

SYNONYMS: dict[str, tuple[str, ...]] = {
    "risk": _RISK,
    "riski": _RISK,
    "leadership": _LEADERSHIP,
    "johtajuus": _LEADERSHIP,
    "johtaminen": _LEADERSHIP,
    "teamwork": _TEAMWORK,
    "tiimityö": _TEAMWORK,
    "yhteistyö": _TEAMWORK,
    "team": _TEAMWORK,
    "tiimi": _TEAMWORK,
    "communication": _COMMUNICATION,
    "viestintä": _COMMUNICATION,
    "vuorovaikutus": _COMMUNICATION,
    "problem solving": _PROBLEM_SOLVING,
    "problem-solving": _PROBLEM_SOLVING,
    "ongelmanratkaisu": _PROBLEM_SOLVING,
    "stakeholder": _STAKEHOLDER,
    "sidosryhmä": _STAKEHOLDER,
    "conflict": _CONFLICT,
    "ristiriita": _CONFLICT,
    "konflikti": _CONFLICT,
    "planning": _PLANNING,
    "plan": _PLANNING,
    "suunnittelu": _PLANNING,
    "quality": _QUALITY,
    "laatu": _QUALITY,
    "change": _CHANGE,
    "muutos": _CHANGE,
    "budget": _BUDGET,
    "cost": _BUDGET,
    "budjet": _BUDGET,
    "kustannu": _BUDGET,
    "time": _TIME,
    "aika": _TIME,
    "decision": _DECISION,
    "päätöksenteko": _DECISION,
    "ethic": _ETHICS,
    "etiikka": _ETHICS,
    "management": _MANAGEMENT,
    "hallinta": _MANAGEMENT,
}


def synonyms_for(kpi_name: str) -> list[str]:
    """Return the synonym list of the first key contained in *kpi_name*.

    Matching is a plain substring test on the lowercased name, so
    ``"Risk Management"`` resolves through ``"risk"`` before ``"management"``.
    Returns an empty list when no key matches.
    """
    name = kpi_name.lower()
    for key, synonyms in SYNONYMS.items():
        if key in name:
            return list(synonyms)
    return []
