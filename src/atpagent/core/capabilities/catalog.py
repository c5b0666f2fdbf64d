from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from .base import CRMCapability, EmailCapability, EnrichmentCapability, GitHubCapability, SlackCapability
from .mock import MockClearbit, MockCRM, MockEmail, MockGitHub, MockSlack


@dataclass(frozen=True)
class CapabilitySpec:
    path: str
    params: str
    returns: str
    description: str


CAPABILITY_SPECS: tuple[CapabilitySpec, ...] = (
    CapabilitySpec("github.list_prs", 'repo, state="open"', "list of {number, title, state, checks}", "List pull requests"),
    CapabilitySpec("github.get_diff", "pr_number", "diff string", "Fetch the diff of a pull request"),
    CapabilitySpec("github.post_comment", "pr_number, body", "{success}", "Comment on a pull request"),
    CapabilitySpec("email.list", "limit=50, assignee=None", "list of {id, subject, from, assignee, content}", "List inbox emails"),
    CapabilitySpec("email.send", "to, subject, body", "{success, id}", "Send an email"),
    CapabilitySpec("slack.post_message", "channel, text", "{success, ts}", "Post to a Slack channel"),
    CapabilitySpec("crm.get_customers", "limit=50", "list of {id, name, email, domain}", "List CRM customers"),
    CapabilitySpec("crm.batch_update", "customers", "{success, updated}", "Write back a list of customer dicts"),
    CapabilitySpec("clearbit.enrich", "domain", "{companyName, industry, employees}", "Enrich a company domain"),
)


class CapabilityCatalog:
    """The ``api`` object handed to generated code."""

    def __init__(
        self,
        github: GitHubCapability,
        email: EmailCapability,
        slack: SlackCapability,
        crm: CRMCapability,
        clearbit: EnrichmentCapability,
    ) -> None:
        self.github = github
        self.email = email
        self.slack = slack
        self.crm = crm
        self.clearbit = clearbit

    def resolve(self, path: str) -> Callable[..., Any]:
        system, _, operation = path.partition(".")
        target = getattr(self, system, None)
        handler = getattr(target, operation, None) if target is not None and operation else None
        if handler is None or not callable(handler):
            raise KeyError(f"capability not found: {path}")
        return handler

    def paths(self) -> list[str]:
        return [spec.path for spec in CAPABILITY_SPECS]


def build_mock_catalog() -> CapabilityCatalog:
    return CapabilityCatalog(
        github=MockGitHub(),
        email=MockEmail(),
        slack=MockSlack(),
        crm=MockCRM(),
        clearbit=MockClearbit(),
    )


def describe_catalog(specs: tuple[CapabilitySpec, ...] = CAPABILITY_SPECS) -> str:
    return "\n".join(
        f"- await api.{spec.path}({spec.params}) -> {spec.returns}  # {spec.description}"
        for spec in specs
    )
