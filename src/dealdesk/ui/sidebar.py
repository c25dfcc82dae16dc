"""Navigation sidebars as plain view models.

- main_sidebar(): application-level links; the Rappels item carries the
  overdue-reminder badge.
- ProjectSidebar: per-dossier tabs, with the economics tab reserved for
  admins.
"""

from __future__ import annotations

from pydantic import BaseModel

from src.dealdesk.core.identity import MissingIdentityError, get_current_user


class NavItem(BaseModel):
    id: str
    label: str
    icon: str
    description: str = ""
    active: bool = False
    badge: int | None = None
    admin_only: bool = False


_MAIN_ITEMS: list[tuple[str, str, str]] = [
    ("dashboard", "Tableau de Bord", "bar-chart-3"),
    ("societes", "Sociétés", "building"),
    ("contacts", "Contacts", "users"),
    ("processus", "Processus", "git-branch"),
    ("interactions", "Interactions", "message-square"),
    ("rappels", "Rappels", "bell"),
]


def main_sidebar(overdue_count: int = 0, active: str = "dashboard") -> list[NavItem]:
    """Main navigation; the badge only appears when something is overdue."""
    return [
        NavItem(
            id=item_id,
            label=label,
            icon=icon,
            active=item_id == active,
            badge=overdue_count if item_id == "rappels" and overdue_count > 0 else None,
        )
        for item_id, label, icon in _MAIN_ITEMS
    ]


class UserProfile(BaseModel):
    name: str
    poste: str


def sidebar_profile() -> UserProfile | None:
    """Footer profile of the signed-in user, or None when nobody is bound."""
    try:
        user = get_current_user()
    except MissingIdentityError:
        return None
    return UserProfile(name=user.display_name, poste=user.poste)


# ── Project Sidebar ─────────────────────────────────────────────────────────

PROJECT_TABS: list[NavItem] = [
    NavItem(id="timeline", label="Timeline / Journal", icon="clock",
            description="Historique des interactions"),
    NavItem(id="todo", label="To-do List", icon="check-square",
            description="Tâches et rappels"),
    NavItem(id="roadshow", label="Roadshow", icon="users",
            description="Suivi des contacts"),
    NavItem(id="documents", label="Documents & Toolbox", icon="file-text",
            description="Fichiers et outils"),
    NavItem(id="journal", label="Journal de bord", icon="book-open",
            description="Notes internes"),
    NavItem(id="qa", label="Q&A", icon="message-circle",
            description="Questions/Réponses"),
    NavItem(id="working-group", label="Working Group List", icon="user-check",
            description="Équipes projet"),
]

ADMIN_PROJECT_TABS: list[NavItem] = [
    NavItem(id="economics", label="Synthèse économique", icon="calculator",
            description="Conditions financières", admin_only=True),
]


class ProjectSidebar:
    """Tabs of the dossier detail page."""

    def __init__(self, is_admin: bool = False, active_tab: str = "timeline") -> None:
        self.is_admin = is_admin
        self.active_tab = active_tab

    def items(self) -> list[NavItem]:
        tabs = PROJECT_TABS + (ADMIN_PROJECT_TABS if self.is_admin else [])
        return [tab.model_copy(update={"active": tab.id == self.active_tab}) for tab in tabs]

    def select(self, tab_id: str) -> None:
        """Switch tab. Raises KeyError for unknown or non-permitted tabs."""
        if tab_id not in {tab.id for tab in self.items()}:
            raise KeyError(f"Unknown project tab: {tab_id}")
        self.active_tab = tab_id
