from jira import JIRA
from jira.exceptions import JIRAError
import re
from typing import Any, List, Optional

from qa_casegen.config.settings import Config
from qa_casegen.models.jira_models import Ticket
from qa_casegen.utils.logger import get_logger
from qa_casegen.utils.exceptions import (
    ErrorCode,
    JiraAuthenticationException,
    JiraClientException,
    JiraTicketNotFoundException,
)

logger = get_logger(__name__)

# Jira Server renders sprints as "com.atlassian.greenhopper...Sprint@1[id=1,state=ACTIVE,name=Sprint 1,...]"
_LEGACY_SPRINT_FIELD = re.compile(r'state=(?P<state>[^,\]]*).*?name=(?P<name>[^,\]]*)')


def _to_jira_exception(error: JIRAError, message: str, ticket_key: str) -> JiraClientException:
    """Categorize a JIRAError by HTTP status"""
    status = getattr(error, 'status_code', None)
    context = {'task_id': ticket_key, 'status_code': status}
    if status in (401, 403):
        return JiraAuthenticationException(
            f"{message}: Authentication failed", context=context, original_exception=error
        )
    if status == 404:
        return JiraTicketNotFoundException(
            f"{message}: Task not found", context=context, original_exception=error
        )
    if status == 400:
        return JiraClientException(
            f"{message}: Invalid task ID format",
            error_code=ErrorCode.TASK_INVALID_FORMAT,
            context=context,
            original_exception=error
        )
    if status == 429:
        return JiraClientException(
            f"{message}: Rate limit exceeded",
            error_code=ErrorCode.RATE_LIMIT_EXCEEDED,
            context=context,
            original_exception=error
        )
    return JiraClientException(
        f"{message}: {error.text or str(error)}", context=context, original_exception=error
    )


class JiraClient:
    """Client for Jira API integration"""

    def __init__(self, config: Config, client: Optional[JIRA] = None):
        """
        Initialize Jira client

        Args:
            config: Application configuration
            client: Pre-built JIRA instance (skips connecting)
        """
        self.config = config
        self.sprint_field = config.jira.sprint_field
        if client is not None:
            self.client = client
            return
        try:
            self.client = JIRA(
                server=config.jira.server,
                basic_auth=(config.jira.email, config.jira.api_token)
            )
            logger.info(f"Connected to Jira: {config.jira.server}")
        except JIRAError as e:
            raise JiraClientException(
                f"Failed to connect to Jira: {str(e)}", original_exception=e
            ) from e

    def get_ticket(self, ticket_key: str) -> Ticket:
        """
        Fetch ticket id, title and description from Jira

        Args:
            ticket_key: Jira ticket key (e.g., PA-12345)

        Returns:
            Ticket object (sprint name included when available)

        Raises:
            JiraTicketNotFoundException: If the ticket does not exist
            JiraAuthenticationException: If credentials are rejected
            JiraClientException: For any other Jira failure
        """
        logger.info(f"Fetching Jira ticket: {ticket_key}", extra={'task_id': ticket_key})

        try:
            issue = self.client.issue(ticket_key, fields=f"summary,description,{self.sprint_field}")
        except JIRAError as e:
            raise _to_jira_exception(e, f"Failed to fetch ticket {ticket_key}", ticket_key) from e

        fields = issue.raw.get('fields', {})
        ticket = Ticket(
            id=issue.key,
            title=fields.get('summary') or "",
            body=self._description_text(fields.get('description')),
            sprint_name=self._pick_sprint_name(fields.get(self.sprint_field)),
        )
        logger.info(f"Successfully fetched ticket: {ticket.id}", extra={'task_id': ticket.id})
        return ticket

    def get_sprint_name(self, ticket_key: str) -> Optional[str]:
        """
        Get the sprint name of a ticket

        Prefers the active sprint, otherwise the last sprint listed. Sprint
        lookup never fails the caller: errors are logged and None returned.
        """
        try:
            issue = self.client.issue(ticket_key, fields=self.sprint_field)
        except JIRAError as e:
            logger.warning(f"Could not get sprint info for {ticket_key}: {str(e)}")
            return None
        return self._pick_sprint_name(issue.raw.get('fields', {}).get(self.sprint_field))

    @staticmethod
    def _pick_sprint_name(sprints: Any) -> Optional[str]:
        if not sprints:
            return None

        parsed: List[dict] = []
        for sprint in sprints:
            if isinstance(sprint, dict):
                parsed.append(sprint)
            elif isinstance(sprint, str):
                match = _LEGACY_SPRINT_FIELD.search(sprint)
                if match:
                    parsed.append(match.groupdict())

        if not parsed:
            return None

        for sprint in parsed:
            if str(sprint.get('state', '')).lower() == 'active':
                return sprint.get('name')
        return parsed[-1].get('name')

    @staticmethod
    def _description_text(description: Any) -> str:
        """Plain text description; Atlassian Document Format is flattened to its text nodes"""
        if not description:
            return ""
        if isinstance(description, str):
            return description

        parts: List[str] = []

        def walk(node: Any) -> None:
            if isinstance(node, dict):
                if node.get('type') == 'text':
                    parts.append(node.get('text', ''))
                for child in node.get('content', []):
                    walk(child)
                if node.get('type') in ('paragraph', 'heading', 'listItem'):
                    parts.append("\n")

        walk(description)
        return "".join(parts).strip()
