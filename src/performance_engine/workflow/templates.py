"""Default responsibility sets used to seed new plans."""

from __future__ import annotations

from typing import Any

GENERAL_RESPONSIBILITIES = (
    ("Deliver high-quality work outputs within agreed timelines", 25),
    ("Collaborate effectively with team members and stakeholders", 20),
    ("Maintain professional standards and organizational values", 15),
    ("Continuously develop skills and knowledge relevant to role", 15),
    ("Support organizational objectives and initiatives", 25),
)

MANAGER_RESPONSIBILITIES = (
    ("Lead and develop team members effectively", 30),
    ("Achieve departmental goals and objectives", 25),
    ("Manage resources efficiently and effectively", 20),
    ("Foster positive team culture and collaboration", 15),
    ("Drive continuous improvement initiatives", 10),
)

SENIOR_RESPONSIBILITIES = (
    ("Deliver complex technical/professional solutions", 30),
    ("Mentor junior staff and share knowledge", 20),
    ("Lead project initiatives and deliverables", 25),
    ("Maintain expert-level competency in field", 15),
    ("Support strategic decision-making processes", 10),
)


def default_responsibilities(position: str | None) -> list[dict[str, Any]]:
    """Return the standard responsibility entries for a position title.

    Manager and supervisor titles get the leadership set, senior titles the
    senior set, everything else the general set. Every set totals 100.
    """
    title = (position or "").lower()
    if "manager" in title or "supervisor" in title:
        template = MANAGER_RESPONSIBILITIES
    elif "senior" in title:
        template = SENIOR_RESPONSIBILITIES
    else:
        template = GENERAL_RESPONSIBILITIES
    return [{"description": description, "weight": weight} for description, weight in template]
