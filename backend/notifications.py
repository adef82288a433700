"""
Email notifications via SendGrid.

Sending is fire-and-forget: failures are logged and reported as ``False`` but
never raised, so a publish or invite request does not fail because of email.
"""

import logging
from typing import Iterable

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

import config

logger = logging.getLogger(__name__)


def build_lineup_email(recipient: dict, match: dict, team_name: str) -> tuple[str, str]:
    """Subject and plain-text body telling one player where they are playing."""
    subject = f"{team_name}: lineup published for {match['date']} vs {match['opponent_name']}"

    body_lines = [
        f"Hi {recipient['full_name']},",
        "",
        f"The lineup for {team_name} vs {match['opponent_name']} has been published.",
        "",
        f"Date: {match['date']}",
        f"Time: {match['time']}",
    ]
    if match.get("venue"):
        body_lines.append(f"Venue: {match['venue']}")
    body_lines.append(f"Court: {recipient['court_number']}")
    if recipient.get("partner_name"):
        body_lines.append(f"Partner: {recipient['partner_name']}")
    body_lines.extend([
        "",
        f"View the full lineup: {config.APP_BASE_URL}/teams/{match['team_id']}/matches/{match['id']}",
        "",
        "---",
        "This is an automated message from Tennis Lineup.",
    ])
    return subject, "\n".join(body_lines)


def send_email(to_email: str, subject: str, body: str) -> bool:
    if not config.ENABLE_EMAIL:
        logger.info("Email sending is disabled. Skipped email to %s", to_email)
        return True

    if not config.SENDGRID_API_KEY:
        logger.warning("SENDGRID_API_KEY not configured. Skipped email to %s", to_email)
        return True

    message = Mail(
        from_email=Email(config.SENDGRID_FROM_EMAIL),
        to_emails=To(to_email),
        subject=subject,
        plain_text_content=Content("text/plain", body),
    )

    try:
        response = SendGridAPIClient(config.SENDGRID_API_KEY).send(message)
    except Exception as e:
        logger.error("Failed to send email to %s: %s", to_email, e)
        return False

    if 200 <= response.status_code < 300:
        logger.info("Email sent to %s", to_email)
        return True

    logger.error("SendGrid returned status %s: %s", response.status_code, response.body)
    return False


def send_lineup_published(recipients: Iterable[dict], match: dict, team_name: str) -> int:
    """Email every assigned player that has an address. Returns how many sends succeeded."""
    sent = 0
    for recipient in recipients:
        if not recipient.get("email"):
            logger.info("Roster member %s has no email address, skipping", recipient.get("id"))
            continue
        subject, body = build_lineup_email(recipient, match, team_name)
        if send_email(recipient["email"], subject, body):
            sent += 1
    return sent


def build_invitation_email(invitation: dict, team_name: str) -> tuple[str, str]:
    subject = f"You're invited to join {team_name}"
    greeting = f"Hi {invitation['invitee_name']}," if invitation.get("invitee_name") else "Hi,"

    body_lines = [
        greeting,
        "",
        f"You've been invited to join {team_name} on Tennis Lineup.",
    ]
    if invitation.get("message"):
        body_lines.extend(["", invitation["message"]])
    body_lines.extend([
        "",
        f"Accept the invitation: {config.APP_BASE_URL}/invitations/{invitation['id']}",
        "",
        "---",
        "This is an automated message from Tennis Lineup.",
    ])
    return subject, "\n".join(body_lines)


def send_team_invitation(invitation: dict, team_name: str) -> bool:
    subject, body = build_invitation_email(invitation, team_name)
    return send_email(invitation["invitee_email"], subject, body)
