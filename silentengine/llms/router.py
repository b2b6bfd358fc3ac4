# =============================================================================
# silentengine/llms/router.py — Task type -> routing rule
# =============================================================================
# Rules are static and loaded once. A task type without a rule routes to the
# default model with strategy "single".
# =============================================================================

from collections.abc import Iterable

from silentengine.schemas.request import TaskType
from silentengine.schemas.routing import RoutingRule
from silentengine.utils.logger import logger

DEFAULT_MODEL = "groq:llama-3.1-70b"

ROUTING_RULES: list[dict] = [
    {
        "taskType": "code",
        "primaryModel": "anthropic:claude-haiku-4",
        "backupModel": "groq:llama-3.1-70b",
        "strategy": "fallback",
    },
    {
        "taskType": "analysis",
        "primaryModel": "anthropic:claude-haiku-4",
        "backupModel": "groq:llama-3.1-70b",
        "strategy": "fallback",
    },
    {
        "taskType": "json",
        "primaryModel": "groq:llama-3.1-70b",
        "strategy": "single",
    },
    {
        "taskType": "creative",
        "primaryModel": "anthropic:claude-haiku-4",
        "backupModel": "groq:llama-3.1-70b",
        "strategy": "fallback",
    },
    {
        "taskType": "explanation",
        "primaryModel": "groq:llama-3.1-70b",
        "backupModel": "google:gemini-1.5-flash",
        "strategy": "fallback",
    },
    {
        "taskType": "chat",
        "primaryModel": "groq:llama-3.1-70b",
        "strategy": "single",
    },
]


class Router:
    def __init__(self, rules: Iterable[RoutingRule], default_model: str = DEFAULT_MODEL) -> None:
        self.default_model = default_model
        self._rules: dict[str, RoutingRule] = {rule.task_type: rule for rule in rules}
        logger.info("routing_rules_loaded", extra={"count": len(self._rules), "default": default_model})

    @classmethod
    def from_config(cls, rules: list[dict] | None = None, default_model: str = DEFAULT_MODEL) -> "Router":
        raw = ROUTING_RULES if rules is None else rules
        return cls([RoutingRule.model_validate(r) for r in raw], default_model=default_model)

    def resolve(self, task_type: TaskType) -> RoutingRule:
        rule = self._rules.get(task_type)
        if rule is not None:
            return rule
        return RoutingRule(task_type=task_type, primary_model=self.default_model, strategy="single")

    def models(self) -> set[str]:
        ids = {self.default_model}
        for rule in self._rules.values():
            ids.add(rule.primary_model)
            if rule.backup_model:
                ids.add(rule.backup_model)
        return ids
