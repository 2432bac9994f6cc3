"""
Link helpers for public content: job contact links, video embeds and
URL detection inside free text.
"""

import re

URL_RE = re.compile(r"(https?://\S+)")
EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
YOUTUBE_RE = re.compile(r"^.*(youtu\.be/|v/|u/\w/|embed/|watch\?v=|&v=)([^#&?]*).*")
VIMEO_RE = re.compile(r"vimeo.*/(\d+)", re.IGNORECASE)
PHONE_RE = re.compile(r"^\+?[\d\s()-]{7,}$")


def is_email(text: str) -> bool:
    return EMAIL_RE.fullmatch(text.strip()) is not None


def is_url(text: str) -> bool:
    return URL_RE.match(text.strip()) is not None


def contact_link(contact_info: str, method: str | None = None) -> str | None:
    """
    Turn a job's contact info into something clickable.

    Emails become mailto: links and URLs are returned as-is. WhatsApp numbers
    become wa.me links. A bare domain given for an external_link job gets an
    https:// prefix. Anything else has no link.
    """
    text = contact_info.strip()
    if not text:
        return None
    if is_email(text):
        return f"mailto:{text}"
    if is_url(text):
        return text
    if method == "whatsapp" and PHONE_RE.match(text):
        return "https://wa.me/" + re.sub(r"\D", "", text)
    if method == "external_link" and " " not in text and "." in text:
        return f"https://{text}"
    return None


def extract_youtube_id(url: str) -> str | None:
    match = YOUTUBE_RE.match(url)
    if match and len(match.group(2)) == 11:
        return match.group(2)
    return None


def extract_vimeo_id(url: str) -> str | None:
    match = VIMEO_RE.search(url)
    return match.group(1) if match else None


def embed_url(url: str | None) -> str | None:
    """Player URL for a video link: YouTube and Vimeo embeds, else the link itself."""
    if not url:
        return None
    youtube_id = extract_youtube_id(url)
    if youtube_id:
        return f"https://www.youtube.com/embed/{youtube_id}"
    vimeo_id = extract_vimeo_id(url)
    if vimeo_id:
        return f"https://player.vimeo.com/video/{vimeo_id}"
    return url


def split_links(text: str) -> list[dict[str, str]]:
    """
    Split free text into ordered segments of {"type": "text"|"url", "value": ...}
    so descriptions can be rendered with clickable links.
    """
    segments = []
    for part in URL_RE.split(text):
        if not part:
            continue
        kind = "url" if URL_RE.fullmatch(part) else "text"
        segments.append({"type": kind, "value": part})
    return segments
