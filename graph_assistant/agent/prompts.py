"""System prompts and canned replies for the assistant."""

import re
from datetime import datetime, timezone

SYSTEM_PROMPT_CONTEXT = """

Today's date: {current_date}

Guidelines:
- Be concise and direct in your responses
- When you don't have access to specific information, say so clearly
- When discussing dates, prefer specific dates over relative terms (e.g., "30th January" not "Friday")
"""

SYSTEM_PROMPT_MS_CONNECTED = """
You have access to the user's Microsoft 365 account: their calendar, email and recent documents.
"""

SYSTEM_PROMPT_MS_NOT_CONNECTED = """
Note: The user is not signed in to Microsoft 365. If they ask about their calendar, emails or files, let them know they can sign in with 'az login' to enable these features.
"""

# Keyword -> reply used by the simulated responder. First match wins.
CANNED_REPLIES = [
    (("meeting", "calendar", "schedule", "agenda"),
     "You can see today's meetings with /insights meetings. I can also summarize "
     "the week with /insights meetings week."),
    (("email", "mail", "inbox", "message"),
     "Your latest emails are available with /insights emails. Use /insights recent "
     "for a quick overview of what changed in the last day."),
    (("document", "file", "onedrive", "sharepoint"),
     "Recently modified documents are listed by /insights documents."),
    (("export", "save", "download"),
     "Use /export <path> [json|csv|html|markdown|text] to export this conversation, "
     "or /save <path> to keep a snapshot you can /load later."),
    (("help", "what can you do", "commands"),
     "I can summarize your meetings, emails and documents, keep track of our "
     "conversation and export it. Type /help for the full list of commands."),
    (("hello", "hi", "hey", "good morning", "good afternoon"),
     "Hello! How can I help you with your Microsoft 365 day?"),
]

DEFAULT_REPLY = (
    "I'm running without a connected AI backend, so I can only help with insights "
    "and conversation management. Try /insights recent or /help."
)


def build_system_message(base_prompt: str, ms_connected: bool = False) -> str:
    """Build the system message with the current date and connection status."""
    current_date = datetime.now(timezone.utc).strftime("%A, %d %B %Y")
    system_message = base_prompt.rstrip() + SYSTEM_PROMPT_CONTEXT.format(current_date=current_date)

    if ms_connected:
        system_message += SYSTEM_PROMPT_MS_CONNECTED
    else:
        system_message += SYSTEM_PROMPT_MS_NOT_CONNECTED

    return system_message


def _mentions(text: str, keyword: str) -> bool:
    # Short keywords must be whole words ("hi" should not match "this")
    pattern = rf"\b{re.escape(keyword)}" + (r"\b" if len(keyword) < 4 else "")
    return re.search(pattern, text) is not None


def canned_reply(message: str) -> str:
    """Pick a canned reply by keyword."""
    lowered = message.lower()
    for keywords, reply in CANNED_REPLIES:
        if any(_mentions(lowered, keyword) for keyword in keywords):
            return reply
    return DEFAULT_REPLY
