"""Client for the UA Cloud Library GraphQL API.

Handles:
- Cursor-paginated listing of nodesets awaiting approval
- Approval status updates (approve, reject, cancel, keep pending)
"""

import logging
from typing import Any, Dict, Optional

import httpx

from profiledesigner.core.approval.errors import CloudLibraryError
from profiledesigner.core.approval.models import (
    PageInfo,
    RemotePage,
    StatusUpdateOutcome,
    Submission,
)
from profiledesigner.core.approval.states import SubmissionState
from profiledesigner.core.config import Settings

logger = logging.getLogger(__name__)

GRAPHQL_PATH = "/graphql"

# Additional property holding the Profile Designer author's display name
AUTHOR_PROPERTY = "CESMIIAuthor"

NODESET_FIELDS = """
fragment NodeSetFields on CloudLibNodeSetModel {
  identifier
  modelUri
  version
  publicationDate
  metadata {
    title
    description
    license
    contributor { name }
    approvalStatus
    approvalInformation
    additionalProperties { name value }
  }
}
"""

PENDING_APPROVALS_QUERY = NODESET_FIELDS + """
query PendingApprovals(
  $first: Int, $after: String, $last: Int, $before: String,
  $additionalProperty: UAPropertyInput
) {
  nodeSetsPendingApproval(
    first: $first, after: $after, last: $last, before: $before,
    additionalProperty: $additionalProperty
  ) {
    totalCount
    pageInfo { startCursor endCursor hasNextPage hasPreviousPage }
    nodes { ...NodeSetFields }
  }
}
"""

APPROVE_NODESET_MUTATION = NODESET_FIELDS + """
mutation ApproveNodeSet($identifier: String!, $status: ApprovalStatus!, $approvalInformation: String) {
  approveNodeSet(identifier: $identifier, status: $status, approvalInformation: $approvalInformation) {
    ...NodeSetFields
  }
}
"""


class CloudLibraryClient:
    """
    Async client for the Cloud Library approval queue.

    GraphQL errors raise CloudLibraryError; HTTP failures propagate as
    httpx.HTTPError.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        """
        Initialize the client.

        Args:
            settings: Application settings with Cloud Library credentials
            transport: Optional transport override (used by tests)
        """
        self.settings = settings
        auth = None
        if settings.cloudlib_username:
            auth = httpx.BasicAuth(settings.cloudlib_username, settings.cloudlib_password or "")
        self._client = httpx.AsyncClient(
            base_url=settings.cloudlib_url,
            auth=auth,
            timeout=settings.cloudlib_timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_pending_approvals(
        self,
        take: int,
        cursor: Optional[str],
        page_backwards: bool,
        attribution: str,
    ) -> Optional[RemotePage]:
        """
        Fetch one page of nodesets awaiting approval.

        Args:
            take: Page size
            cursor: Cursor from a previous page, if any
            page_backwards: Page towards the start of the queue
            attribution: Identity of the acting Profile Designer user

        Returns:
            The page, or None if the Cloud Library returned no page
        """
        variables: Dict[str, Any] = {
            "additionalProperty": {
                "name": self.settings.cloudlib_user_info_property,
                "value": attribution,
            },
        }
        if page_backwards:
            variables.update({"last": take, "before": cursor})
        else:
            variables.update({"first": take, "after": cursor})

        data = await self._execute(PENDING_APPROVALS_QUERY, variables)
        connection = data.get("nodeSetsPendingApproval")
        if connection is None:
            return None

        return RemotePage(
            items=[self._to_submission(node) for node in connection.get("nodes") or []],
            page_info=PageInfo.model_validate(connection.get("pageInfo") or {}),
            total_count=connection.get("totalCount") or 0,
        )

    async def update_approval_status(
        self,
        submission_id: str,
        state: SubmissionState,
        description: Optional[str],
    ) -> StatusUpdateOutcome:
        """Ask the Cloud Library to move a nodeset to a new approval status."""
        data = await self._execute(
            APPROVE_NODESET_MUTATION,
            {
                "identifier": submission_id,
                "status": state.status_string,
                "approvalInformation": description,
            },
        )
        node = data.get("approveNodeSet")
        if node is None:
            return StatusUpdateOutcome.no_result(
                f"Cloud Library returned no result updating {submission_id}"
            )

        submission = self._to_submission(node)
        reported = submission.approval_status
        if reported is None or reported.upper() == state.status_string:
            return StatusUpdateOutcome.success(submission.model_copy(update={"state": state}))

        logger.warning(
            f"Cloud Library reports status {reported} for {submission_id} "
            f"after requesting {state.status_string}"
        )
        return StatusUpdateOutcome.failed(
            f"Cloud Library reports status {reported}",
            submission,
        )

    async def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Run a GraphQL operation and return its data."""
        response = await self._client.post(
            GRAPHQL_PATH,
            json={"query": query, "variables": variables},
        )
        response.raise_for_status()

        try:
            payload = response.json()
        except ValueError as e:
            raise CloudLibraryError("Invalid response from Cloud Library.") from e

        errors = payload.get("errors")
        if errors:
            message = "; ".join(error.get("message", "Unknown error") for error in errors)
            raise CloudLibraryError(message)

        return payload.get("data") or {}

    def _to_submission(self, node: Dict[str, Any]) -> Submission:
        """Convert a GraphQL nodeset to a Submission."""
        metadata = node.get("metadata") or {}
        contributor = metadata.get("contributor") or {}
        properties = {
            prop.get("name"): prop.get("value")
            for prop in metadata.get("additionalProperties") or []
        }
        status = metadata.get("approvalStatus")
        try:
            state = SubmissionState.from_status_string(status)
        except ValueError as e:
            raise CloudLibraryError(str(e)) from e

        return Submission(
            id=str(node.get("identifier")),
            title=metadata.get("title"),
            namespace=node.get("modelUri"),
            description=metadata.get("description"),
            contributor_name=contributor.get("name"),
            license=metadata.get("license"),
            author_name=properties.get(AUTHOR_PROPERTY),
            version=node.get("version"),
            publish_date=node.get("publicationDate"),
            state=state,
            approval_status=status,
            approval_description=metadata.get("approvalInformation"),
        )
