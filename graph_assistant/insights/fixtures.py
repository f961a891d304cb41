"""Sample Graph payloads used when the live API is unavailable."""

from datetime import datetime, timedelta

# (subject, organizer, location, hours after start of day, duration in minutes, preview)
_MEETINGS = [
    ("Daily stand-up", "Priya Shah", "Microsoft Teams", 9, 15,
     "Quick sync on yesterday's progress and blockers."),
    ("Q3 roadmap review", "Daniel Okafor", "Conference Room 4B", 10, 60,
     "Walk through the proposed roadmap and agree on priorities."),
    ("1:1 with manager", "Laura Chen", "Microsoft Teams", 13, 30,
     "Career goals, feedback and current workload."),
    ("Customer onboarding: Contoso", "Marco Rossi", "Microsoft Teams", 15, 45,
     "Kick-off call with Contoso's IT team."),
    ("Budget planning", "Sofia Alvarez", "Finance Room", 16, 30,
     "Draft departmental budget for next quarter."),
]

# (subject, sender name, sender address, minutes ago, importance, preview)
_EMAILS = [
    ("Action required: approve expense report", "Expenses", "expenses@contoso.com", 35, "high",
     "Your approval is needed for 3 pending expense reports."),
    ("Re: Q3 roadmap draft", "Daniel Okafor", "daniel.okafor@contoso.com", 90, "normal",
     "Thanks for the comments, I've updated slides 4 and 7."),
    ("Contoso onboarding agenda", "Marco Rossi", "marco.rossi@contoso.com", 180, "normal",
     "Attached is the agenda for this afternoon's kick-off."),
    ("Weekly security digest", "IT Security", "security@contoso.com", 600, "low",
     "No incidents this week. Remember to complete the phishing training."),
    ("Team offsite: venue options", "Sofia Alvarez", "sofia.alvarez@contoso.com", 1500, "normal",
     "Three venue options for the offsite, please vote by Friday."),
]

# (name, last modified by, minutes ago, web url)
_DOCUMENTS = [
    ("Q3 Roadmap.pptx", "Daniel Okafor", 60, "https://contoso.sharepoint.com/sites/product/Q3%20Roadmap.pptx"),
    ("Budget FY25.xlsx", "Sofia Alvarez", 240, "https://contoso.sharepoint.com/sites/finance/Budget%20FY25.xlsx"),
    ("Contoso onboarding plan.docx", "Marco Rossi", 1440 + 120, "https://contoso.sharepoint.com/sites/cs/Onboarding.docx"),
    ("Architecture notes.md", "Priya Shah", 4320, "https://contoso-my.sharepoint.com/personal/priya/Architecture.md"),
]


def _iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def meeting_payloads(now: datetime) -> list[dict]:
    """Graph ``calendarView`` shaped events for today."""
    start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
    events = []
    for i, (subject, organizer, location, hour, minutes, preview) in enumerate(_MEETINGS, 1):
        start = start_of_day + timedelta(hours=hour)
        events.append({
            "id": f"sample-meeting-{i}",
            "subject": subject,
            "start": {"dateTime": _iso(start), "timeZone": "UTC"},
            "end": {"dateTime": _iso(start + timedelta(minutes=minutes)), "timeZone": "UTC"},
            "location": {"displayName": location},
            "organizer": {"emailAddress": {"name": organizer}},
            "bodyPreview": preview,
        })
    return events


def email_payloads(now: datetime) -> list[dict]:
    """Graph ``messages`` shaped emails, newest first."""
    return [
        {
            "id": f"sample-email-{i}",
            "subject": subject,
            "from": {"emailAddress": {"name": name, "address": address}},
            "receivedDateTime": _iso(now - timedelta(minutes=minutes)),
            "importance": importance,
            "bodyPreview": preview,
        }
        for i, (subject, name, address, minutes, importance, preview) in enumerate(_EMAILS, 1)
    ]


def document_payloads(now: datetime) -> list[dict]:
    """Graph ``driveItem`` shaped documents, most recently modified first."""
    return [
        {
            "id": f"sample-document-{i}",
            "name": name,
            "webUrl": url,
            "lastModifiedDateTime": _iso(now - timedelta(minutes=minutes)),
            "lastModifiedBy": {"user": {"displayName": modified_by}},
        }
        for i, (name, modified_by, minutes, url) in enumerate(_DOCUMENTS, 1)
    ]
