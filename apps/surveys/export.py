from __future__ import annotations

import csv
import io
from typing import Iterable

from .models import Survey, SurveyInvitation

EXPORT_HEADER = ["Email", "Name", "Organization", "Participant Type", "Magic Link", "Sent", "Opened", "Responded"]


def _flag(value) -> str:
    return "Yes" if value else "No"


def invitation_rows(invitations: Iterable[SurveyInvitation]):
    for inv in invitations:
        contact = inv.contact
        org = contact.organization if contact else None
        yield [
            inv.email,
            contact.name if contact else "",
            org.name if org else "",
            inv.participant_type,
            inv.survey_url,
            _flag(inv.sent_at),
            _flag(inv.opened_at),
            _flag(inv.responded_at),
        ]


def export_invitations_csv(survey: Survey) -> str:
    """One quoted row per invitation of `survey`, ordered by email."""
    invitations = (
        SurveyInvitation.objects
        .filter(survey=survey)
        .select_related("contact__organization")
        .order_by("email", "id")
    )
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(EXPORT_HEADER)
    writer.writerows(invitation_rows(invitations))
    return buf.getvalue()
