from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from assistgate.app.scope.contracts import ScopePolicy
from assistgate.app.scope.service import evaluate_heuristics

EXPECTED_IN = "in"
EXPECTED_INCONCLUSIVE = "inconclusive"
DEFAULT_CASES_PATH = Path(__file__).resolve().parents[3] / "data" / "eval" / "scope_cases.json"


@dataclass(frozen=True)
class ScopeEvalCase:
    name: str
    message: str
    expected: str
    context: str = ""


@dataclass(frozen=True)
class ScopeEvalResult:
    name: str
    passed: bool
    detail: str


def load_cases(path: Path = DEFAULT_CASES_PATH) -> tuple[ScopeEvalCase, ...]:
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)

    if not isinstance(payload, list):
        return tuple()

    cases: list[ScopeEvalCase] = []
    for row in payload:
        if not isinstance(row, dict):
            continue
        name = row.get("name")
        message = row.get("message")
        expected = row.get("expected")
        context = row.get("context", "")
        if not isinstance(name, str) or not isinstance(message, str):
            continue
        if expected not in {EXPECTED_IN, EXPECTED_INCONCLUSIVE}:
            continue
        if not isinstance(context, str):
            continue
        cases.append(
            ScopeEvalCase(name=name, message=message, expected=expected, context=context)
        )
    return tuple(cases)


def _run_case(case: ScopeEvalCase, policy: ScopePolicy) -> ScopeEvalResult:
    decision = evaluate_heuristics(case.message, case.context, policy)
    actual = EXPECTED_IN if decision.in_scope else EXPECTED_INCONCLUSIVE
    if actual != case.expected:
        return ScopeEvalResult(
            name=case.name,
            passed=False,
            detail=f"expected {case.expected}, got {actual} ({decision.stage})",
        )
    return ScopeEvalResult(name=case.name, passed=True, detail=decision.stage)


def run_scope_eval(
    policy: ScopePolicy,
    cases: tuple[ScopeEvalCase, ...] | None = None,
) -> dict[str, object]:
    selected = cases if cases is not None else load_cases()
    results = [_run_case(case, policy) for case in selected]
    failures = [result for result in results if not result.passed]
    return {
        "passed": not failures and bool(results),
        "total": len(results),
        "failures": len(failures),
        "results": [
            {"name": result.name, "passed": result.passed, "detail": result.detail}
            for result in results
        ],
    }
