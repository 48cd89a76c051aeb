"""Static vocabulary tables for storefront retrieval and crawling.

# ─── PURPOSE ───────────────────────────────────────────────────────────
#
# Hand-curated word lists used by several components:
#
#   - the Similarity Ranker boosts chunks that mention synonyms of a
#     shopping concept in the query ("price" ≈ "cost", "affordable", ...)
#   - the HTML processor strips navigation labels and social links that
#     every themed storefront page repeats
#   - the crawler recognises challenge pages served by bot protection
#
# All functions are pure.  Tables are built once at import time.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import re


# ═════════════════════════════════════════════════════════════════════════
# 1. SHOPPING CONCEPT SYNONYMS
# ═════════════════════════════════════════════════════════════════════════
# Each key is a concept a shopper asks about; the value lists words that
# signal the same concept inside a content chunk.  A query word matching
# either the key or one of its members activates the whole group.

SEMANTIC_MAPPINGS: dict[str, tuple[str, ...]] = {
    "price": ("cost", "pricing", "affordable", "expensive"),
    "shipping": ("delivery", "shipment", "shipping", "deliver"),
    "size": ("dimensions", "measurement", "large", "small"),
    "color": ("colored", "shade", "tone", "hue"),
}


def get_related_terms(word: str) -> list[tuple[str, ...]]:
    """Return every synonym group activated by *word* (lower-cased).

    A word may activate more than one group; each activation is returned
    separately so callers can score repeated matches.
    """
    word = word.lower()
    return [
        related
        for key, related in SEMANTIC_MAPPINGS.items()
        if word == key or word in related
    ]


# ═════════════════════════════════════════════════════════════════════════
# 2. PAGE BOILERPLATE
# ═════════════════════════════════════════════════════════════════════════
# Navigation labels, account widgets and cart buttons found on nearly every
# storefront theme.  Removed with word boundaries, case-insensitively.

BOILERPLATE_PHRASES: tuple[str, ...] = (
    "Skip to content", "Skip to main content", "Skip to navigation",
    "Search", "Search for:", "Menu", "Main Menu", "Navigation", "Primary Menu",
    "Footer", "Header", "Sidebar", "Widget", "Banner",
    "Home", "About", "Contact", "Services", "Products", "Portfolio",
    "Copyright", "All rights reserved", "Terms", "Privacy",
    "Share", "Share this", "Share on", "Like", "Tweet", "Pin",
    "Read more", "Learn more", "Click here", "Details", "More",
    "Subscribe", "Newsletter", "Sign up", "Log in", "Register", "Login",
    "Username", "Password", "Forgot password",
    "Comments", "Leave a comment", "Reply", "Submit", "Post",
    "Related", "Categories", "Tags", "Archives", "Recent",
    "Previous", "Next", "Back", "Forward", "Continue",
    "Add to cart", "Buy now", "Checkout", "Shopping cart",
)

SOCIAL_PHRASES: tuple[str, ...] = (
    "Facebook", "Twitter", "Instagram", "LinkedIn", "Pinterest",
    "YouTube", "TikTok", "RSS", "Follow us",
)


def _phrase_pattern(phrases: tuple[str, ...]) -> re.Pattern[str]:
    # Longest first so "Skip to main content" wins over "Skip to content".
    ordered = sorted(phrases, key=len, reverse=True)
    alternation = "|".join(re.escape(p) for p in ordered)
    return re.compile(rf"(?<!\w)(?:{alternation})(?!\w)", re.IGNORECASE)


BOILERPLATE_PATTERN = _phrase_pattern(BOILERPLATE_PHRASES + ("©",))
SOCIAL_PATTERN = _phrase_pattern(SOCIAL_PHRASES)


def strip_boilerplate(text: str) -> str:
    """Remove navigation and social-network phrases from *text*."""
    text = BOILERPLATE_PATTERN.sub("", text)
    return SOCIAL_PATTERN.sub("", text)


# ═════════════════════════════════════════════════════════════════════════
# 3. BOT-PROTECTION MARKERS
# ═════════════════════════════════════════════════════════════════════════
# CHALLENGE_MARKERS drive the one-shot probe of a crawl seed: a match marks
# the URL as permanently protected.  FETCH_BLOCK_MARKERS are the broader
# list checked on every fetched page, where a match only skips that page.

CHALLENGE_MARKERS: tuple[str, ...] = (
    "recaptcha",
    "cloudflare",
    "are you human",
    "verify you are human",
    "security check",
    "captcha",
    "challenge",
    "bot detection",
)

FETCH_BLOCK_MARKERS: tuple[str, ...] = (
    "captcha",
    "cloudflare",
    "ddos-guard",
    "challenge-form",
    "access denied",
    "blocked",
    "security check",
    "please wait",
    "human verification",
    "bot protection",
    "javascript required",
    "please enable javascript",
    "checking your browser",
    "automated access",
    "temporarily limited",
    "too many requests",
)

PROTECTION_HEADER_PATTERN = re.compile(r"cloudflare|protection|security|firewall|guard", re.IGNORECASE)


def find_marker(body: str, markers: tuple[str, ...]) -> str | None:
    """Return the first marker contained in *body* (case-insensitive), or None."""
    lowered = body.lower()
    for marker in markers:
        if marker in lowered:
            return marker
    return None
