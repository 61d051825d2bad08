"""Issue retrieval.

Functions:
    get_open_issues(client, project_key, page_size)   -> list[Issue]
"""

import logging

from sonar_autoscan.client import PAGE_SIZE, SonarClient
from sonar_autoscan.models import Issue

logger = logging.getLogger(__name__)


def get_open_issues(
    client: SonarClient,
    project_key: str,
    page_size: int = PAGE_SIZE,
) -> list[Issue]:
    """Return every OPEN issue of *project_key*, in server order."""
    params = {
        "projects": project_key,
        "statuses": "OPEN",
    }
    raw = client.get_paginated(
        "/api/issues/search", params, results_key="issues", page_size=page_size
    )
    issues = [Issue.from_json(i) for i in raw]
    logger.debug("Retrieved %d open issues for %s", len(issues), project_key)
    return issues
