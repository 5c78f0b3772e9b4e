"""Feature specs (plans with acceptance criteria and tasks) stored for a site.

An agent drafts a spec from the codebase, saves it, reads it back when work
starts and ticks off tasks and criteria as it goes.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..api.client import BackendClient
from ..config import SeoContextConfig
from ..errors import DomainRequiredError, SeoContextError
from ..models.responses import (
    CreatedFeatureSpec,
    CreateFeatureSpecResult,
    FeatureSpecDetail,
    FeatureSpecMatch,
    FeatureSpecSearchResult,
    FeatureSpecSummary,
    FeatureSpecUpdateResult,
)

logger = logging.getLogger(__name__)

FEATURE_TYPES = ("new_feature", "enhancement", "refactor", "bug_fix")
PRIORITIES = ("critical", "high", "normal", "low")
SPEC_STATUSES = ("planned", "in_progress", "completed", "verified", "deprecated")
TASK_STATUSES = ("todo", "in_progress", "completed", "blocked")
CRITERION_STATUSES = ("pending", "implemented", "tested", "verified")

CRITERION_TYPES = ("functional", "technical", "performance", "security", "accessibility")
VERIFICATION_METHODS = ("automated_test", "manual_qa", "code_review")
TASK_TYPES = ("backend", "frontend", "database", "testing", "docs")


class FeatureSpecError(SeoContextError):
    """Raised when the backend rejects or cannot find a feature spec."""


def _check_choice(name: str, value: str, choices: tuple) -> None:
    if value not in choices:
        raise ValueError(f"{name} must be one of {', '.join(choices)}, got {value!r}")


def normalize_criterion(criterion: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in defaults for an acceptance criterion and validate its enums."""
    if not criterion.get("title"):
        raise ValueError("Every criterion needs a title")

    normalized = {
        "title": criterion["title"],
        "criterion_type": criterion.get("criterion_type") or "functional",
        "verification_method": criterion.get("verification_method") or "manual_qa",
        "is_required": criterion.get("is_required", True),
    }
    if criterion.get("description"):
        normalized["description"] = criterion["description"]

    _check_choice("criterion_type", normalized["criterion_type"], CRITERION_TYPES)
    _check_choice("verification_method", normalized["verification_method"], VERIFICATION_METHODS)
    return normalized


def normalize_task(task: Dict[str, Any]) -> Dict[str, Any]:
    """Fill in defaults for an implementation task and validate its type."""
    if not task.get("title"):
        raise ValueError("Every task needs a title")

    normalized = {
        "title": task["title"],
        "task_type": task.get("task_type") or "frontend",
        "files_to_modify": list(task.get("files_to_modify") or []),
    }
    for optional in ("description", "code_snippet"):
        if task.get(optional):
            normalized[optional] = task[optional]

    _check_choice("task_type", normalized["task_type"], TASK_TYPES)
    return normalized


def _backend_message(error: httpx.HTTPStatusError) -> str:
    """Prefer the backend's own error text over the HTTP status line."""
    try:
        payload = error.response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("error"):
        return str(payload["error"])
    return str(error)


class FeatureSpecService:
    def __init__(self, api: BackendClient, config: SeoContextConfig) -> None:
        self.api = api
        self.config = config

    def dashboard_url(self, spec_id: str, client_id: Optional[str]) -> str:
        base_url = self.config.backend_api_url.rstrip("/").removesuffix("/api")
        if client_id:
            return f"{base_url}/clients/{client_id}/features/{spec_id}"
        return f"{base_url}/features/{spec_id}"

    async def create_feature_spec(
        self,
        title: str,
        domain: Optional[str] = None,
        project_id: Optional[str] = None,
        description: Optional[str] = None,
        feature_type: str = "new_feature",
        priority: str = "normal",
        ai_context_summary: Optional[str] = None,
        next_action: Optional[str] = None,
        tech_stack: Optional[List[str]] = None,
        affected_files: Optional[List[str]] = None,
        tags: Optional[List[str]] = None,
        criteria: Optional[List[Dict[str, Any]]] = None,
        tasks: Optional[List[Dict[str, Any]]] = None,
    ) -> CreateFeatureSpecResult:
        """Save a new feature spec with status "planned".

        The site comes from project_id when given (a site id), otherwise from
        the domain or the configured default domain.

        Raises:
            ValueError: If an enum field or a criterion/task is invalid
            DomainRequiredError: If neither project_id nor a domain is available
            SiteResolutionError: If the domain is not registered
            FeatureSpecError: If the backend rejects the spec
        """
        if not title:
            raise ValueError("title is required")
        _check_choice("feature_type", feature_type, FEATURE_TYPES)
        _check_choice("priority", priority, PRIORITIES)
        criteria = [normalize_criterion(c) for c in criteria or []]
        tasks = [normalize_task(t) for t in tasks or []]

        domain = domain or self.config.default_domain
        if not domain and not project_id:
            raise DomainRequiredError()

        logger.info(
            "Creating feature spec: domain=%s project_id=%s title=%s", domain, project_id, title
        )

        if project_id:
            site_id = project_id
            client_id = await self.api.get_site_client_id(project_id)
        else:
            site = await self.api.resolve_site(domain=domain)
            site_id, client_id = site.site_id, site.client_id

        body: Dict[str, Any] = {
            "title": title,
            "description": description or None,
            "feature_type": feature_type,
            "status": "planned",
            "priority": priority,
            "tech_stack": list(tech_stack or []),
            "affected_files": list(affected_files or []),
            "tags": list(tags or []),
            "ai_context_summary": ai_context_summary or None,
            "next_action": next_action or None,
        }
        if criteria:
            body["criteria"] = criteria
        if tasks:
            body["tasks"] = tasks

        try:
            created = await self.api.create_feature_spec(site_id, body)
        except httpx.HTTPStatusError as e:
            raise FeatureSpecError(_backend_message(e)) from e

        if not created:
            raise FeatureSpecError("Feature spec was not returned by the API.")

        logger.info("Feature spec created: %s (%s)", created.get("id"), title)

        return CreateFeatureSpecResult(
            spec=CreatedFeatureSpec(
                id=created["id"],
                title=created.get("title") or title,
                status=created.get("status") or "planned",
                priority=created.get("priority") or priority,
                feature_type=created.get("feature_type") or feature_type,
                criteria_count=len(criteria),
                tasks_count=len(tasks),
                created_at=created.get("created_at"),
            ),
            url=self.dashboard_url(created["id"], client_id),
        )

    async def get_feature_spec(
        self,
        spec_id: str,
        include_criteria: bool = True,
        include_tasks: bool = True,
    ) -> FeatureSpecDetail:
        """Get one spec with its acceptance criteria and tasks.

        Raises:
            FeatureSpecError: If no spec has that id
        """
        logger.info("Getting feature spec %s", spec_id)
        try:
            data = await self.api.get_feature_spec(spec_id, include_criteria, include_tasks)
        except httpx.HTTPStatusError as e:
            raise FeatureSpecError(_backend_message(e)) from e

        if data is None:
            raise FeatureSpecError(f'Feature spec "{spec_id}" not found.')

        spec = data["spec"]
        criteria = list(data.get("criteria") or [])
        tasks = list(data.get("tasks") or [])
        client_id = data.get("client_id")

        return FeatureSpecDetail(
            spec=spec,
            criteria=criteria,
            tasks=tasks,
            dashboard_url=self.dashboard_url(spec["id"], client_id) if client_id else None,
            summary=FeatureSpecSummary(
                title=spec.get("title", ""),
                status=spec.get("status", ""),
                priority=spec.get("priority", ""),
                next_action=spec.get("next_action"),
                tasks_total=len(tasks),
                tasks_completed=sum(1 for t in tasks if t.get("status") == "completed"),
                criteria_total=len(criteria),
            ),
        )

    async def search_feature_specs(
        self,
        search: str,
        domain: Optional[str] = None,
        project_id: Optional[str] = None,
    ) -> FeatureSpecSearchResult:
        """Find specs of a site whose title or description mention a keyword."""
        domain = domain or self.config.default_domain
        if not domain and not project_id:
            raise DomainRequiredError()

        logger.info("Searching feature specs: domain=%s search=%s", domain, search)
        site = await self.api.resolve_site(domain=domain, project_id=project_id)
        try:
            specs = await self.api.search_feature_specs(site.site_id, search)
        except httpx.HTTPStatusError as e:
            raise FeatureSpecError(_backend_message(e)) from e

        if not specs:
            return FeatureSpecSearchResult(message=f'No feature specs found matching "{search}".')

        plural = "" if len(specs) == 1 else "s"
        return FeatureSpecSearchResult(
            message=(
                f'Found {len(specs)} spec{plural} matching "{search}". '
                "Use spec_id to retrieve full details for a specific spec."
            ),
            specs=[
                FeatureSpecMatch(
                    spec_id=s["id"],
                    title=s.get("title", ""),
                    status=s.get("status"),
                    priority=s.get("priority"),
                    feature_type=s.get("feature_type"),
                    next_action=s.get("next_action"),
                    tasks_count=s.get("tasks_count"),
                    completed_tasks_count=s.get("completed_tasks_count"),
                )
                for s in specs
            ],
        )

    async def update_feature_spec(
        self,
        spec_id: str,
        status: Optional[str] = None,
        next_action: Optional[str] = None,
        task_id: Optional[str] = None,
        task_status: Optional[str] = None,
        criterion_id: Optional[str] = None,
        criterion_status: Optional[str] = None,
    ) -> FeatureSpecUpdateResult:
        """Update a spec's status, one task, one criterion or the next action.

        The backend advances next_action after a task completes unless it is
        given explicitly, and suggests a commit message for the change.

        Raises:
            ValueError: If nothing to update is given or a status is invalid
            FeatureSpecError: If the backend refuses the update
        """
        if not spec_id:
            raise ValueError("spec_id is required.")
        if not status and not task_id and not criterion_id and next_action is None:
            raise ValueError(
                "Provide at least one of: status, task_id + task_status, "
                "criterion_id + criterion_status, or next_action."
            )
        if task_id and not task_status:
            raise ValueError("task_status is required when task_id is provided.")
        if criterion_id and not criterion_status:
            raise ValueError("criterion_status is required when criterion_id is provided.")

        body: Dict[str, Any] = {}
        if status:
            _check_choice("status", status, SPEC_STATUSES)
            body["status"] = status
        if next_action is not None:
            body["next_action"] = next_action
        if task_id:
            _check_choice("task_status", task_status, TASK_STATUSES)
            body["task_id"] = task_id
            body["task_status"] = task_status
        if criterion_id:
            _check_choice("criterion_status", criterion_status, CRITERION_STATUSES)
            body["criterion_id"] = criterion_id
            body["criterion_status"] = criterion_status

        logger.info("Updating feature spec %s: %s", spec_id, body)
        try:
            data = await self.api.update_feature_spec(spec_id, body)
        except httpx.HTTPStatusError as e:
            raise FeatureSpecError(_backend_message(e)) from e

        if not data.get("success"):
            raise FeatureSpecError(data.get("error") or "Failed to update feature spec.")

        return FeatureSpecUpdateResult(
            spec_id=spec_id,
            next_action=data.get("next_action"),
            suggested_commit=data.get("suggested_commit"),
        )
