"""
Demo data for a fresh workspace.

Idempotent: each family is seeded only when its store is empty, so
running ``flask seed-demo`` twice does not duplicate anything.

Usage:
    from workhub.seed import seed_demo
    counts = seed_demo(get_workspace())
"""

import logging

from workhub.services.workspace import Workspace

logger = logging.getLogger(__name__)

DEMO_MEMBERS = [
    {"name": "Dana Whitfield", "email": "dana@example.com", "role": "manager",
     "department": "PMO", "skills": ["Planning", "Reporting"], "status": "online"},
    {"name": "Ravi Menon", "email": "ravi@example.com", "role": "developer",
     "department": "Engineering", "skills": ["Python", "SQL"], "status": "busy"},
    {"name": "Lena Ortiz", "email": "lena@example.com", "role": "qa",
     "department": "Quality", "skills": ["Test automation"], "status": "offline"},
]

DEMO_NOTICES = [
    {
        "title": "Scheduled maintenance",
        "content": "The system will be down for maintenance this Sunday from 02:00 to 04:00.",
        "is_important": True,
    },
]

DEMO_WIKI_PAGES = [
    {
        "title": "Onboarding guide",
        "category": "onboarding",
        "content": (
            "# Welcome!\n\n## First-day checklist\n- [ ] Join the team chat\n"
            "- [ ] Set up your development environment\n- [ ] Say hello to the team\n\n"
            "## Contacts\n- HR: hr@example.com\n- IT support: help@example.com"
        ),
    },
    {
        "title": "Coding conventions",
        "category": "technical",
        "content": (
            "# Conventions\n\n## Naming\n- **Variables**: snake_case\n- **Classes**: PascalCase\n"
            "- **Constants**: UPPER_SNAKE_CASE\n\n## Git flow\n1. Branch from main\n"
            "2. Open a pull request\n3. Merge after review"
        ),
    },
    {
        "title": "Release checklist",
        "category": "process",
        "content": (
            "# Release\n\n### Before\n- [ ] All tests green\n- [ ] Release notes written\n\n"
            "### During\n- [ ] Deploy to staging and verify\n- [ ] Deploy to production\n\n"
            "### After\n- [ ] Watch the monitoring dashboard"
        ),
    },
]


def seed_demo(workspace: Workspace) -> dict:
    """Seed members, a demo project, notices and wiki pages. Returns counts per family."""
    counts = {"members": 0, "projects": 0, "notices": 0, "wiki_pages": 0}

    if not workspace.members.list_members():
        for payload in DEMO_MEMBERS:
            workspace.members.add_member(payload)
            counts["members"] += 1

    if not workspace.projects.list_projects():
        team = [m.id for m in workspace.members.list_members()]
        workspace.projects.add_project({
            "name": "Customer portal",
            "description": "Self-service portal for order tracking",
            "status": "in_progress",
            "priority": "high",
            "industry": "software",
            "methodology": "scrum",
            "team_members": team,
            "budget": 50000,
        })
        counts["projects"] += 1

    if not workspace.notices.list_notices():
        for payload in DEMO_NOTICES:
            workspace.notices.add_notice(payload)
            counts["notices"] += 1

    if not workspace.wiki.list_pages():
        for payload in DEMO_WIKI_PAGES:
            workspace.wiki.add_page(payload)
            counts["wiki_pages"] += 1

    logger.info("Demo seed complete: %s", counts)
    return counts
