# ruff: noqa: E402

from __future__ import annotations

import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[2]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from assistgate.app.evaluation.suite import run_scope_eval
from assistgate.core.config import load_app_config
from assistgate.core.policy import load_policy_bundle


def main() -> int:
    policy = load_policy_bundle(load_app_config().policy_path)
    report = run_scope_eval(policy.scope)
    print(json.dumps(report, indent=2))
    return 0 if report["passed"] else 1


if __name__ == "__main__":
    sys.exit(main())
