"""Branded HTML email layout.

Outgoing messages are either complete HTML documents (template emails that
already carry the brand layout) or fragments and plain text written by
agents. Complete documents only get the customer-portal button inserted;
everything else is formatted and wrapped in the branded layout.
"""

import html as html_lib
import re
from datetime import datetime
from typing import Optional

from app.core.config import settings

CTA_LABEL = "Login to Customer Portal"

LOGO_PATH = "/storage/v1/object/public/promotion-logos/mediamarkt-logo-email.png"

_FOOTER_PATTERNS = (
    re.compile(r'(<tr>\s*<td[^>]*style="[^"]*background-color:\s*#262626)', re.IGNORECASE),
    re.compile(r'(<tr>\s*<td[^>]*style="[^"]*background-color:\s*#1a1a1a)', re.IGNORECASE),
    re.compile(r"(</table>\s*</td>\s*</tr>\s*</table>\s*</td>\s*</tr>\s*</table>)", re.IGNORECASE),
)

_WRAPPER_PATTERNS = (
    re.compile(r"^<!DOCTYPE[^>]*>", re.IGNORECASE),
    re.compile(r"<head[^>]*>.*?</head>", re.IGNORECASE | re.DOTALL),
    re.compile(r"</?html[^>]*>", re.IGNORECASE),
    re.compile(r"</?body[^>]*>", re.IGNORECASE),
    re.compile(r"<style[^>]*>.*?</style>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<title[^>]*>.*?</title>", re.IGNORECASE | re.DOTALL),
)

_HAS_TAG_RE = re.compile(r"<[a-z][\s\S]*>", re.IGNORECASE)
_CTA_ANCHOR_RE = re.compile(r'<a[^>]*class="cta-button"[^>]*>.*?</a>', re.IGNORECASE)
_CTA_BLOCK_RE = re.compile(rf"<div[^>]*>\s*<a[^>]*>{CTA_LABEL}</a>\s*</div>", re.IGNORECASE)
_BULLET_RE = re.compile(r"^[•*]\s*")

EMAIL_STYLES = """
    body { margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, 'Helvetica Neue', Arial, sans-serif; background-color: #f5f5f5; }
    .email-container { max-width: 600px; margin: 0 auto; background-color: #ffffff; }
    .header { background: linear-gradient(135deg, #e30613 0%, #c40510 100%); padding: 30px 40px; text-align: center; }
    .logo { max-width: 180px; height: auto; margin-bottom: 10px; filter: brightness(0) invert(1); }
    .content { padding: 40px; color: #333333; line-height: 1.6; word-wrap: break-word; overflow-wrap: break-word; }
    .content p { margin: 0 0 16px 0; color: #333333; word-wrap: break-word; }
    .content strong { color: #333333; font-weight: 600; }
    .claim-info { background-color: #f8f8f8; border-left: 4px solid #e30613; padding: 16px 20px; margin: 24px 0; }
    .claim-info p { margin: 8px 0; font-size: 14px; }
    .cta-button { display: inline-block; background-color: #e30613; color: #ffffff !important; text-decoration: none; padding: 14px 32px; border-radius: 4px; font-weight: 600; margin: 24px 0; }
    .footer { background-color: #1a1a1a; color: #999999; padding: 30px 40px; text-align: center; font-size: 12px; line-height: 1.8; }
    .footer a { color: #e30613; text-decoration: none; }
    @media only screen and (max-width: 600px) {
      .content { padding: 24px !important; }
      .header { padding: 20px !important; }
      .footer { padding: 20px !important; }
    }
"""


def logo_url() -> str:
    return f"{settings.supabase_url}{LOGO_PATH}"


def is_complete_html_document(content: str) -> bool:
    trimmed = content.strip().lower()
    has_html_structure = (
        (trimmed.startswith("<!doctype html>") or trimmed.startswith("<html"))
        and "<body" in trimmed
        and "</body>" in trimmed
    )
    has_email_table = "cellpadding" in content or "cellspacing" in content
    return has_html_structure or ("<table" in trimmed and has_email_table)


def _cta_row(action_url: str) -> str:
    return f"""
    <tr>
      <td style="padding: 20px 30px; text-align: center;">
        <a href="{action_url}" style="display: inline-block; background-color: #E31E24; color: #ffffff !important; text-decoration: none; padding: 14px 32px; border-radius: 4px; font-weight: 600; font-size: 14px;">{CTA_LABEL}</a>
      </td>
    </tr>
  """


def _cta_button(action_url: Optional[str]) -> str:
    if not action_url:
        return ""
    return f"""
    <div style="text-align: center; margin: 32px 0 16px 0;">
      <a href="{action_url}" class="cta-button">{CTA_LABEL}</a>
    </div>
  """


def insert_cta_into_document(document: str, action_url: Optional[str]) -> str:
    """Insert the portal button before the footer of a complete document."""
    if not action_url:
        return document

    row = _cta_row(action_url)
    for pattern in _FOOTER_PATTERNS:
        if pattern.search(document):
            return pattern.sub(lambda m: row + m.group(1), document, count=1)
    return document.replace("</body>", row + "</body>", 1)


def _format_block(block: str) -> str:
    lines = block.split("\n")
    if ":" in block and len(lines) > 1:
        rows = []
        for line in lines:
            if ":" in line:
                label, value = line.split(":", 1)
                rows.append(f"<p><strong>{label}:</strong>{value}</p>")
            else:
                rows.append(f"<p>{line}</p>")
        return f'<div class="claim-info">{"".join(rows)}</div>'

    if "•" in block or "*" in block:
        items = [
            f"<li>{_BULLET_RE.sub('', line.strip())}</li>"
            for line in lines
            if line.strip().startswith(("•", "*"))
        ]
        return f'<ul style="margin: 16px 0; padding-left: 24px;">{"".join(items)}</ul>'

    return f"<p>{block.replace(chr(10), '<br>')}</p>"


def format_plain_text(content: str, action_url: Optional[str] = None) -> str:
    """Turn agent-written text or an HTML fragment into email body markup."""
    cleaned = content.strip()
    for pattern in _WRAPPER_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = cleaned.strip()

    if _HAS_TAG_RE.search(cleaned):
        cleaned = _CTA_ANCHOR_RE.sub("", cleaned)
        cleaned = _CTA_BLOCK_RE.sub("", cleaned)
        return cleaned + _cta_button(action_url)

    blocks = [block.strip() for block in cleaned.split("\n\n")]
    return "".join(_format_block(block) for block in blocks if block) + _cta_button(action_url)


def wrap_email_content(content: str, subject: str, action_url: Optional[str] = None) -> str:
    """Return the final HTML sent to the customer."""
    if is_complete_html_document(content):
        return insert_cta_into_document(content, action_url)

    year = datetime.now().year
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>{html_lib.escape(subject)}</title>
  <style>{EMAIL_STYLES}</style>
</head>
<body>
  <div class="email-container">
    <div class="header">
      <img src="{logo_url()}" alt="MediaMarkt" class="logo" />
      <div style="color: #ffffff; font-size: 14px; margin-top: 8px; font-weight: normal;">Insurance Protection</div>
    </div>
    <div class="content">
      {format_plain_text(content, action_url)}
    </div>
    <div class="footer">
      <p><strong>MediaMarkt Insurance</strong></p>
      <p>Your trusted protection partner</p>
      <div style="margin: 16px 0;">
        <a href="#">Contact Support</a> |
        <a href="#">Policy Terms</a> |
        <a href="#">Privacy Policy</a>
      </div>
      <p>This is an automated message. Please do not reply to this email.</p>
      <p style="margin-top: 16px; color: #666;">
        © {year} MediaMarkt Insurance. All rights reserved.
      </p>
    </div>
  </div>
</body>
</html>"""


_BLOCK_BREAK_RE = re.compile(r"</(p|div|tr|h[1-6]|li|ul|table)>", re.IGNORECASE)
_LINE_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_HEAD_RE = re.compile(r"<(head|style|title)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
_CTA_TEXT_RE = re.compile(rf"\s*{CTA_LABEL}\s*")
_CONTENT_REGION_RE = re.compile(r'<div class="content">(.*?)<div class="footer">', re.DOTALL)


def strip_html(markup: str) -> str:
    """Reduce stored HTML to readable text with paragraphs separated by blank lines.

    For messages in the branded layout only the content section is kept.
    """
    region = _CONTENT_REGION_RE.search(markup)
    text = region.group(1) if region else markup
    text = _HEAD_RE.sub("", text)
    text = _LINE_BREAK_RE.sub("\n", text)
    text = _BLOCK_BREAK_RE.sub("\n\n", text)
    text = _TAG_RE.sub("", text)
    text = html_lib.unescape(text)
    text = _CTA_TEXT_RE.sub("\n", text)

    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()
