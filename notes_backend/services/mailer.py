# notes_backend/services/mailer.py
from __future__ import annotations

import html
import logging
import smtplib
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Any, Dict, List, Optional

from ..config import settings
from ..schemas import ReviewNote

logger = logging.getLogger("notes.email")


class Mailer:
    """SMTP-over-SSL sender (Gmail app password by default)."""

    def __init__(self, user: Optional[str] = None, password: Optional[str] = None,
                 host: Optional[str] = None, port: Optional[int] = None):
        self.user = user or settings.GMAIL_USER
        self.password = password or settings.GMAIL_APP_PASSWORD
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT

    def send(self, to: str | List[str], subject: str, text: Optional[str] = None,
             html_body: Optional[str] = None, sender: Optional[str] = None) -> Dict[str, Any]:
        if not self.password:
            logger.warning("Email not sent: GMAIL_APP_PASSWORD not configured")
            return {"ok": False, "error": "GMAIL_APP_PASSWORD not configured"}

        recipients = to if isinstance(to, list) else [to]
        msg = MIMEMultipart("alternative")
        msg["From"] = sender or settings.REVIEW_EMAIL_FROM or f"Notes Review <{self.user}>"
        msg["To"] = ", ".join(recipients)
        msg["Subject"] = subject
        if text:
            msg.attach(MIMEText(text, "plain", "utf-8"))
        if html_body:
            msg.attach(MIMEText(html_body, "html", "utf-8"))

        try:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=30) as server:
                server.login(self.user or "", self.password)
                server.send_message(msg, to_addrs=recipients)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email: {e}")
            return {"ok": False, "error": str(e)}
        logger.info(f"Sent email '{subject}' to {', '.join(recipients)}")
        return {"ok": True}


# -------------------- review digest --------------------
def _label(review_type: str) -> str:
    return "Next Day" if review_type == "next-day" else "Week Later"


def _display_date(value: str) -> str:
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).strftime("%b %d, %Y")
    except ValueError:
        return value


def render_review_digest(notes: List[ReviewNote], link_base: str) -> Dict[str, Any]:
    total = len(notes)
    next_day = sum(1 for n in notes if n.review_type == "next-day")
    week_later = sum(1 for n in notes if n.review_type == "week-later")

    subject = (
        f"📬 You have {total} notes to review today"
        if total
        else "✨ You're all caught up — no notes to review"
    )

    if total:
        items = "".join(
            f'<li style="margin: 0 0 10px 0; line-height: 1.5;">'
            f'<span style="display:inline-block; font-weight:600; color:#111827;">{html.escape(n.title)}</span>'
            f'<span style="color:#6B7280;"> — {_label(n.review_type)} • {html.escape(_display_date(n.date))}</span>'
            f"</li>"
            for n in notes
        )
        details = (
            f'<p style="margin: 0 0 16px 0; color:#374151;">You have <strong>{total}</strong> notes to review today '
            f'<span style="color:#6B7280;">({next_day} next-day, {week_later} week-later)</span>.</p>'
        )
    else:
        items = '<li style="color:#6B7280;">No pending notes.</li>'
        details = '<p style="margin: 0 0 16px 0; color:#374151;">No pending notes today.</p>'

    host = link_base.split("://", 1)[-1]
    body = f"""
  <div style="background:#F9FAFB; padding:24px;">
    <div style="max-width:640px; margin:0 auto; background:#FFFFFF; border:1px solid #E5E7EB; border-radius:12px;">
      <div style="padding:24px 24px 0 24px;">
        <h1 style="margin:0 0 8px 0; font-size:20px; font-weight:700; color:#111827;">📚 Notes Review</h1>
        {details}
      </div>
      <div style="padding:8px 24px 0 24px;">
        <ul style="padding-left:18px; margin:0 0 8px 0;">{items}</ul>
      </div>
      <div style="padding:24px; text-align:center;">
        <a href="{link_base}/review" style="display:inline-block; background:#7C3AED; color:#FFFFFF;
           text-decoration:none; font-weight:600; padding:12px 20px; border-radius:10px;">Open Review App →</a>
      </div>
    </div>
    <p style="max-width:640px; margin:12px auto 0; font-size:12px; color:#9CA3AF; text-align:center;">
      Sent by Notes Middleware · <a href="{link_base}" style="color:#7C3AED; text-decoration:none;">{host}</a>
    </p>
  </div>"""

    if total:
        headline = f"You have {total} notes to review today ({next_day} next-day, {week_later} week-later)."
        listing = "\n".join(f"- {n.title} — {n.review_type} — {_display_date(n.date)}" for n in notes)
    else:
        headline, listing = "No pending notes today.", "No pending notes."
    text = f"{headline}\n\n{listing}\n\nOpen: {link_base}/review"

    return {"subject": subject, "html": body, "text": text,
            "total": total, "next_day": next_day, "week_later": week_later}
