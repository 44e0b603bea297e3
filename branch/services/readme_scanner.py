"""
README mention detection.

Each catalogue maps a display name to a case-insensitive pattern; the number
of non-overlapping matches in a README is that name's mention count.
"""

import re
from typing import Dict, Pattern

AI_TOOL_PATTERNS: Dict[str, Pattern[str]] = {
    "Claude Code": re.compile(r"claude[- ]code", re.IGNORECASE),
    "Claude": re.compile(r"\bclaude\b", re.IGNORECASE),
    "ChatGPT": re.compile(r"chatgpt|chat[- ]gpt", re.IGNORECASE),
    "GitHub Copilot": re.compile(r"copilot", re.IGNORECASE),
    "Cursor": re.compile(r"cursor ai|cursor\.ai", re.IGNORECASE),
    "AI Assisted": re.compile(r"ai[- ]assisted|ai[- ]generated|with ai|using ai", re.IGNORECASE),
}

SERVICE_PATTERNS: Dict[str, Pattern[str]] = {
    "Railway": re.compile(r"railway\.app|railway\.com|\brailway\b", re.IGNORECASE),
    "Cloudflare": re.compile(r"cloudflare|workers\.dev|pages\.dev", re.IGNORECASE),
    "Vercel": re.compile(r"vercel\.app|vercel\.com|\bvercel\b", re.IGNORECASE),
    "Netlify": re.compile(r"netlify\.app|netlify\.com|\bnetlify\b", re.IGNORECASE),
    "AWS": re.compile(r"amazonaws\.com|aws\.amazon|\baws\b", re.IGNORECASE),
    "Google Cloud": re.compile(r"cloud\.google|gcp|google cloud", re.IGNORECASE),
    "Heroku": re.compile(r"heroku\.com|heroku\.app|\bheroku\b", re.IGNORECASE),
    "DigitalOcean": re.compile(r"digitalocean\.com|\bdigitalocean\b", re.IGNORECASE),
    "Render": re.compile(r"render\.com|\brender\b", re.IGNORECASE),
    "Fly.io": re.compile(r"fly\.io|\bfly\.io\b", re.IGNORECASE),
    "Supabase": re.compile(r"supabase\.co|supabase\.com|\bsupabase\b", re.IGNORECASE),
    "Firebase": re.compile(r"firebase\.com|firebase\.google|\bfirebase\b", re.IGNORECASE),
    "PlanetScale": re.compile(r"planetscale\.com|\bplanetscale\b", re.IGNORECASE),
    "Neon": re.compile(r"neon\.tech|\bneon\b", re.IGNORECASE),
}


def count_mentions(text: str, patterns: Dict[str, Pattern[str]]) -> Dict[str, int]:
    """Mention count per name, only for names that occur at least once."""
    counts: Dict[str, int] = {}
    if not text:
        return counts
    for name, pattern in patterns.items():
        matches = len(pattern.findall(text))
        if matches:
            counts[name] = matches
    return counts


def detect_ai_tools(text: str) -> Dict[str, int]:
    return count_mentions(text, AI_TOOL_PATTERNS)


def detect_services(text: str) -> Dict[str, int]:
    return count_mentions(text, SERVICE_PATTERNS)
