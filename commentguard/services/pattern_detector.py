"""
Regex heuristics used as a second opinion against the classifier.

Pure and in-process. A match here never drives an action on its own; it
only decides whether the classifier is asked to re-evaluate.
"""

import re

from commentguard.models.moderation import CommentCategory, PatternResult

_I = re.IGNORECASE

# Blackmail building blocks
TRADITIONAL_PAYMENT = re.compile(
    r"(?:venmo|cashapp|paypal|zelle|pay\s+me|send\s+me|give\s+me|transfer|deposit|wire|money\s+order)",
    _I,
)
CRYPTO_PAYMENT = re.compile(
    r"(?:bitcoin|btc|eth|ethereum|crypto|wallet|usdt|usdc|tether|stablecoin)", _I
)
PAYMENT_ADDRESS = re.compile(
    r"(?:bc1[a-z0-9]{25,}|1[a-km-zA-HJ-NP-Z1-9]{25,}|3[a-km-zA-HJ-NP-Z1-9]{25,}"
    r"|0x[a-fA-F0-9]{40}|\$\w+|@\w+|[\w.-]+@[\w.-]+\.\w+)",
    _I,
)
PAYMENT_AMOUNT = re.compile(
    r"(?:\$?\d+\.?\d*\s*(?:btc|eth|usd|dollars?|bucks?)|send\s+\d+|pay\s+\d+|give\s+\d+|transfer\s+\d+)",
    _I,
)
CONDITIONAL_CONNECTOR = re.compile(
    r"\b(?:or|or\s+else|or\s+i'll|or\s+you'll|or\s+your|or\s+everyone|otherwise|if\s+not|unless)\b",
    _I,
)
THREAT_VERB = re.compile(
    r"\b(?:expose|ruin|destroy|release|reveal|tell|harm|hurt|damage|wreck|sabotage|leak"
    r"|publish|share|spread|broadcast)\b",
    _I,
)
CONSEQUENCE_PHRASE = re.compile(
    r"\b(?:reputation|secrets|photos|videos|information|everyone\s+will\s+know"
    r"|everyone\s+finds\s+out|i'll\s+tell|i'll\s+expose|you'll\s+regret|you'll\s+be\s+sorry"
    r"|consequences|regret|sorry)\b",
    _I,
)

HARM_INTENT = re.compile(
    r"\b(?:kill|murder|die|death|hurt|harm|attack|beat|stab|shoot|violence|violent|threaten"
    r"|threat|i'll\s+get\s+you|watch\s+your\s+back|coming\s+for\s+you|you'll\s+regret"
    r"|you'll\s+pay|revenge)\b",
    _I,
)

TARGETED_ATTACK = re.compile(
    r"(?:@\w+|you're\s+a|you\s+are\s+a|nobody\s+likes|everyone\s+hates|you\s+should"
    r"|just\s+leave|go\s+away|fuck\s+off|shut\s+up|loser|idiot|stupid|ugly|fat|worthless|pathetic)",
    _I,
)
DEROGATORY_TERM = re.compile(
    r"\b(?:slut|whore|bitch|asshole|dickhead|retard|fag|nigger|kike|chink|spic|tranny)\b", _I
)

PROMOTIONAL = re.compile(
    r"(?:link\s+in\s+bio|check\s+my\s+bio|dm\s+me|click\s+here|buy\s+now|limited\s+time"
    r"|act\s+now|exclusive\s+offer|follow\s+for\s+follow|f4f|s4s|promo|discount|sale"
    r"|giveaway|win|free\s+money)",
    _I,
)
LINK = re.compile(r"(?:https?://|www\.|bit\.ly|tinyurl|short\.link)", _I)

ACCUSATION = re.compile(
    r"\b(?:is\s+a\s+thief|is\s+a\s+liar|stole|scammed|fraud|cheat|lied|fake|fraudulent"
    r"|illegal|stole\s+from|scammed\s+people)\b",
    _I,
)


def _has_payment_request(text: str) -> bool:
    return bool(
        TRADITIONAL_PAYMENT.search(text)
        or CRYPTO_PAYMENT.search(text)
        or PAYMENT_AMOUNT.search(text)
        or (PAYMENT_ADDRESS.search(text) and PAYMENT_AMOUNT.search(text))
    )


def _has_conditional_threat(text: str) -> bool:
    return bool(
        CONDITIONAL_CONNECTOR.search(text)
        and (THREAT_VERB.search(text) or CONSEQUENCE_PHRASE.search(text))
    )


def detect_patterns(text: str) -> PatternResult:
    """Return the first matching category in priority order, or none.

    Priority: blackmail, threat, harassment, spam, defamation.
    """
    text = text or ""
    payment = _has_payment_request(text)
    conditional_threat = _has_conditional_threat(text)
    implicit_threat = bool(THREAT_VERB.search(text) and CONSEQUENCE_PHRASE.search(text))

    if payment and (conditional_threat or implicit_threat):
        return PatternResult(
            category=CommentCategory.BLACKMAIL, details="Payment demand + conditional threat"
        )

    if not payment and (HARM_INTENT.search(text) or THREAT_VERB.search(text)):
        return PatternResult(category=CommentCategory.THREAT, details="Harm intent detected")

    if not payment and (TARGETED_ATTACK.search(text) or DEROGATORY_TERM.search(text)):
        return PatternResult(
            category=CommentCategory.HARASSMENT,
            details="Targeted personal attacks or derogatory terms",
        )

    if not payment and not conditional_threat and (PROMOTIONAL.search(text) or LINK.search(text)):
        return PatternResult(
            category=CommentCategory.SPAM,
            details="Promotional content, links, or spam keywords",
        )

    if ACCUSATION.search(text):
        return PatternResult(
            category=CommentCategory.DEFAMATION, details="False damaging claims or accusations"
        )

    return PatternResult()
