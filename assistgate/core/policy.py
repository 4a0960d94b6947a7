from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from assistgate.app.response.contracts import ResponsePolicy
from assistgate.app.sanitize.service import fold_for_matching
from assistgate.app.scope.contracts import ScopePolicy

DEFAULT_POLICY_PATH = Path(__file__).resolve().parent / "default_policy.json"


class PolicyConfigurationError(ValueError):
    pass


@dataclass(frozen=True)
class PolicyBundle:
    scope: ScopePolicy
    response: ResponsePolicy


def _load_json(path: Path) -> object:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _normalize_terms(raw: object, field_name: str) -> tuple[str, ...]:
    if not isinstance(raw, list) or not all(isinstance(item, str) for item in raw):
        raise PolicyConfigurationError(f"'{field_name}' must be a list of strings")
    terms: list[str] = []
    seen: set[str] = set()
    for item in raw:
        normalized = fold_for_matching(item)
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        terms.append(normalized)
    return tuple(terms)


def _require_text(section: dict[str, object], field_name: str) -> str:
    value = section.get(field_name)
    if not isinstance(value, str) or not value.strip():
        raise PolicyConfigurationError(f"'{field_name}' must be a non-empty string")
    return value.strip()


def _require_section(payload: dict[str, object], name: str) -> dict[str, object]:
    section = payload.get(name)
    if not isinstance(section, dict):
        raise PolicyConfigurationError(f"Policy section '{name}' is missing")
    return section


def parse_policy_bundle(payload: object) -> PolicyBundle:
    if not isinstance(payload, dict):
        raise PolicyConfigurationError("Policy document must be a JSON object")

    scope = _require_section(payload, "scope")
    response = _require_section(payload, "response")

    instructions = response.get("assistant_instructions")
    if instructions is not None and not isinstance(instructions, str):
        raise PolicyConfigurationError("'assistant_instructions' must be a string")

    return PolicyBundle(
        scope=ScopePolicy(
            strong_terms=_normalize_terms(scope.get("strong_terms"), "strong_terms"),
            weak_terms=_normalize_terms(scope.get("weak_terms"), "weak_terms"),
            action_terms=_normalize_terms(scope.get("action_terms"), "action_terms"),
            domain_description=_require_text(scope, "domain_description"),
            refusal_message=_require_text(scope, "refusal_message"),
        ),
        response=ResponsePolicy(
            uncertainty_phrases=_normalize_terms(
                response.get("uncertainty_phrases"), "uncertainty_phrases"
            ),
            fallback_message=_require_text(response, "fallback_message"),
            assistant_instructions=(instructions.strip() or None)
            if instructions
            else None,
        ),
    )


def load_policy_bundle(path: str | Path | None = None) -> PolicyBundle:
    policy_path = Path(path) if path else DEFAULT_POLICY_PATH
    try:
        payload = _load_json(policy_path)
    except (OSError, json.JSONDecodeError) as exc:
        raise PolicyConfigurationError(
            f"Unable to read policy file {policy_path}: {exc}"
        ) from exc
    return parse_policy_bundle(payload)
