"""Blocked words for the text check — explicit / inappropriate content, EN + DE."""

from __future__ import annotations

_PROFANITY = {
    "fuck", "fucking", "fucker", "fucked", "fuk", "fck", "shit", "crap", "damn",
    "hell", "bitch", "bastard", "asshole", "arsch",
}

_ANATOMY = {
    "penis", "cock", "dick", "pecker", "schlong", "balls", "testicle", "nut",
    "nuts", "arschloch", "hurensohn", "vagina", "pussy", "cunt", "twat",
    "cooch", "boob", "boobs", "tit", "tits", "titty", "titties", "nipple",
    "butt", "ass", "arse", "butthole", "anus", "rectum", "figg", "figge",
    "fick", "ficken", "acab", "peinlich", "huren", "hure", "wixer", "wixxer",
    "fotze",
}

_SEXUAL = {
    "porn", "porno", "sex", "sexy", "rape", "molest", "nude", "naked", "strip",
    "horny", "orgasm", "cum", "blowjob", "handjob", "masturbate", "jerk",
    "wank", "sperma",
}

_BODILY = {"piss", "pee", "poop", "fart", "diarrhea"}

_VIOLENCE = {
    "kill", "murder", "die", "death", "dead", "stab", "shoot", "gun", "knife",
    "weapon", "blood", "hurt", "pain", "stirb", "töte", "mord", "schieß",
    "messer", "tod", "waffe",
}

_HATE = {"hate", "stupid", "idiot", "retard", "loser", "neger", "nigga", "nigger"}

_DRUGS = {"weed", "drug", "cocaine", "heroin", "meth", "droge"}

# Vowel-dropped spellings; digits never survive normalization
_LEETSPEAK = {"sht", "btch", "cnt", "dck", "pnis"}

BLOCKED_WORDS: frozenset[str] = frozenset(
    _PROFANITY | _ANATOMY | _SEXUAL | _BODILY | _VIOLENCE | _HATE | _DRUGS | _LEETSPEAK
)
