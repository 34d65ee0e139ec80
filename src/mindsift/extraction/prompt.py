"""Prompt builder for thought extraction.

The classification rules are read by the UI's partitioning logic (tasks vs
notes), so their wording must stay in sync with ThoughtType.
"""

from datetime import datetime

SYSTEM_PROMPT = """You are a Thought Architect. Transform one raw mind dump into many structured thought objects.
Extract *every distinct thought*, classify it, add metadata for prioritization and resurfacing.
Always return strict JSON. Do not include commentary."""

USER_PROMPT_TEMPLATE = """CURRENT DATE/TIME: {current_time}
USER TIMEZONE: {timezone}

RAW_DUMP:
"{transcript}"

INSTRUCTIONS:
- Split into distinct items; do not merge unrelated thoughts.
- Identify type: one of ["task","idea","reminder","reflection","question","event"].

  TYPE CLASSIFICATION RULES:
  * "reminder" - Should be classified as "task" (reminders are actionable items to show in task list)
  * "reflection" - Thoughts about past experiences, memories, or introspection (show as notes)
  * "event" - For PAST events or experiences → classify as "reflection" (show as notes)
  * "event" - For FUTURE events or plans (e.g., "I need to go", "I'm going to") → classify as "task" (show in task list)
  * "task" - Actionable items, things to do, plans, or intentions
  * "idea" - Creative thoughts, suggestions, or concepts to explore later
  * "question" - Queries or things the user is wondering about

- Infer importance: "high"|"medium"|"low" from urgency/emotion/impact.
- Parse deadlines (understand relative dates like "Tuesday", "next week") and return ISO 8601 in {timezone} if possible; else null.
- Estimate time_needed in minutes if hinted; else null.
- Assign a lightweight category (free text).
- Provide next_action if actionable; else null.
- Suggest resurface_timing as a *specific time expression* (e.g., "2025-10-06T09:00:00Z") or a relative phrase the server can normalize ("tomorrow morning", "2 days before deadline at 9am").
- Give sentiment (one word).
- List related thought indices (0-based) if thoughts connect.
- Also return global summary, top 3 priorities, and a one-line insight.

SUBTASK GENERATION (CRITICAL):
- For TASKS that are large, vague, or overwhelming (e.g., "plan wedding", "write research paper", "organize garage"), generate subtasks.
- Only generate subtasks for tasks that genuinely benefit from breaking down - NOT for simple, single-action items like "call mom" or "buy milk".
- The FIRST subtask should be extremely small and easy to complete (e.g., "Open Google Docs", "Create a folder", "Find notebook") to help overcome inertia.
- Each subtask should be a concrete, actionable micro-step.
- Order subtasks logically (first subtask is always the easiest starting point).
- Include 3-7 subtasks for large tasks.
- Set subtasks to null for simple tasks.

EXAMPLES OF WHEN TO GENERATE SUBTASKS:
✓ "Plan my sister's wedding" → Break down (large, multi-step project)
✓ "Write quarterly report" → Break down (complex, intimidating)
✓ "Organize home office" → Break down (vague, overwhelming)
✗ "Email John about meeting" → No subtasks (simple, single action)
✗ "Buy groceries" → No subtasks (straightforward task)
✗ "Call dentist to schedule appointment" → No subtasks (one clear action)

RETURN JSON (no extra keys):
{{
  "summary": "",
  "priorities": ["", "", ""],
  "insights": "",
  "thoughts": [
    {{
      "thought_text": "",
      "type": "",
      "importance": "",
      "deadline": "YYYY-MM-DDTHH:MM:SSZ" | null,
      "time_needed_minutes": 30 | null,
      "category": "",
      "next_action": "" | null,
      "related": [],
      "resurface_timing": "",
      "sentiment": "",
      "subtasks": [{{"text": "Very small first step", "order": 1}}, {{"text": "Next step", "order": 2}}] | null
    }}
  ]
}}"""


def build_user_prompt(transcript: str, timezone: str, reference_now: datetime) -> str:
    """Build the extraction request for one transcript.

    Args:
        transcript: The raw dump text, embedded verbatim.
        timezone: IANA timezone of the user.
        reference_now: Current time, ideally already in the user's zone.

    Returns:
        The user prompt string.
    """
    return USER_PROMPT_TEMPLATE.format(
        current_time=reference_now.isoformat(),
        timezone=timezone,
        transcript=transcript,
    )
