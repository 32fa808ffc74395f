# ==============================================
# Jira data models
# ==============================================

from dataclasses import dataclass
from typing import Optional


@dataclass
class Ticket:
    """Jira ticket as consumed by the test case workflow"""
    id: str
    title: str
    body: str = ""
    sprint_name: Optional[str] = None

    def has_body(self) -> bool:
        """Check if ticket has a description"""
        return bool(self.body and self.body.strip())
