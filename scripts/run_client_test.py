#!/usr/bin/env python3
"""API client smoke test for the progressive Dx server.

Acts as a pure HTTP client against a running ``dx-server``: starts
sessions for a grid of patient profiles, answers every presented question
with random present/absent evidence until the session reaches FINAL, and
checks the narrowing invariants from the outside:

  - no question is presented twice
  - phases are visited in order and candidate sets never grow
  - the final report carries a recommended action and disclaimer

Usage::

    # Install deps (first time only)
    uv pip install -e ".[client]"

    # Quick smoke test
    uv run python scripts/run_client_test.py -n 1 -v

    # Reproducible run with a higher symptom-present rate
    uv run python scripts/run_client_test.py --seed 42 --present-rate 0.6
"""

from __future__ import annotations

import argparse
import asyncio
import json
import random
import sys
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import httpx
from rich.console import Console
from rich.table import Table

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

AGE_GROUPS = {"young": (18, 35), "adult": (36, 50), "older": (51, 85)}
SEXES = ["female", "male"]
MEDICAL_HISTORY_POOL = ["hypertension", "diabetes", "smoking", "obesity", "asthma"]
PHASE_ORDER = ["screening", "narrow_10", "narrow_5", "narrow_3", "final"]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

@dataclass
class Profile:
    """One patient test case: age group, sex, and whether history is given."""

    age_group: str
    sex: str
    with_history: bool

    @property
    def label(self) -> str:
        history = "with history" if self.with_history else "no history"
        return f"{self.age_group.title()} {self.sex} ({history})"

    def context(self, rng: random.Random, disorder_codes: list[str]) -> dict[str, Any]:
        lo, hi = AGE_GROUPS[self.age_group]
        body: dict[str, Any] = {"age": rng.randint(lo, hi), "sex": self.sex}
        if self.with_history:
            body["medical_history"] = rng.sample(MEDICAL_HISTORY_POOL, rng.randint(0, 2))
            body["family_history"] = [
                {"disorder_code": code, "relation": "parent"}
                for code in rng.sample(disorder_codes, rng.randint(0, 2))
            ]
        return body


def generate_profiles(age_group: str | None, sex: str | None) -> list[Profile]:
    return [
        Profile(age_group=ag, sex=s, with_history=h)
        for ag in ([age_group] if age_group else list(AGE_GROUPS))
        for s in ([sex] if sex else SEXES)
        for h in (True, False)
    ]


# ---------------------------------------------------------------------------
# APIClient
# ---------------------------------------------------------------------------

class APIClient:
    """Async HTTP client for the progressive Dx API."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> APIClient:
        self._client = httpx.AsyncClient(base_url=self._base_url, timeout=self._timeout)
        return self

    async def __aexit__(self, *args: Any) -> None:
        if self._client:
            await self._client.aclose()

    async def health_check(self) -> bool:
        try:
            resp = await self._client.get("/health")  # type: ignore[union-attr]
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
        return resp.status_code == 200 and resp.json().get("status") == "ok"

    async def disorder_codes(self) -> list[str]:
        resp = await self._client.get("/api/v1/reference/disorders")  # type: ignore[union-attr]
        resp.raise_for_status()
        return [d["code"] for d in resp.json()]

    async def create_session(self, user_id: str, body: dict) -> dict:
        return await self._request("POST", "/api/v1/sessions", user_id, json=body)

    async def submit(self, user_id: str, session_id: str, responses: list[dict]) -> dict:
        return await self._request(
            "POST", f"/api/v1/sessions/{session_id}/responses", user_id,
            json={"responses": responses},
        )

    async def report_text(self, user_id: str, session_id: str) -> str:
        resp = await self._client.get(  # type: ignore[union-attr]
            f"/api/v1/sessions/{session_id}/report.txt",
            headers={"X-User-ID": user_id},
        )
        resp.raise_for_status()
        return resp.text

    async def _request(self, method: str, path: str, user_id: str, json: Any) -> dict:
        headers = {"X-User-ID": user_id}
        try:
            resp = await self._client.request(method, path, headers=headers, json=json)  # type: ignore[union-attr]
        except httpx.TimeoutException:
            resp = await self._client.request(method, path, headers=headers, json=json)  # type: ignore[union-attr]
        resp.raise_for_status()
        return resp.json()


# ---------------------------------------------------------------------------
# SessionResult
# ---------------------------------------------------------------------------

@dataclass
class SessionResult:
    profile: Profile
    run_index: int
    status: str = "pending"          # "success", "failed", "incomplete"
    top_candidate: str | None = None
    confidence: float | None = None
    urgency: str | None = None
    questions_answered: int = 0
    violations: list[str] = field(default_factory=list)
    error: str | None = None


# ---------------------------------------------------------------------------
# SessionRunner
# ---------------------------------------------------------------------------

class SessionRunner:
    """Drive one session from start to the final report."""

    def __init__(
        self,
        client: APIClient,
        rng: random.Random,
        console: Console,
        *,
        present_rate: float,
        verbosity: int,
        max_steps: int = 100,
    ):
        self._client = client
        self._rng = rng
        self._console = console
        self._present_rate = present_rate
        self._verbosity = verbosity
        self._max_steps = max_steps

    def _answer(self, question: dict) -> dict:
        answers = [
            {"symptom": code, "present": self._rng.random() < self._present_rate}
            for code in question["target_symptoms"]
        ]
        if self._verbosity >= 1:
            present = [a["symptom"] for a in answers if a["present"]] or ["none"]
            self._console.print(
                f"    [dim]Q:[/] {question['text']} ({question['qid']}) "
                f"[dim]-> present: {', '.join(present)}[/]"
            )
        return {"qid": question["qid"], "answers": answers}

    async def run(self, profile: Profile, run_index: int, disorder_codes: list[str]) -> SessionResult:
        result = SessionResult(profile=profile, run_index=run_index)
        user_id = f"test_user_{uuid.uuid4().hex[:8]}"

        try:
            start = await self._client.create_session(
                user_id, profile.context(self._rng, disorder_codes),
            )
            session_id = start["session_id"]
            question = start["question"]
            presented = [question["qid"]]

            for _ in range(self._max_steps):
                step = await self._client.submit(user_id, session_id, [self._answer(question)])
                result.questions_answered += 1
                if self._verbosity >= 2:
                    self._console.print_json(json.dumps(step))

                if step["type"] == "transition":
                    for t in step["transitions"]:
                        self._console.print(
                            f"  [green]✓[/] {t['from_phase']} -> {t['to_phase']} "
                            f"({t['reason']}, {len(t['candidate_codes'])} candidates)"
                        )

                if step["type"] == "completed":
                    self._finish(step["report"], result)
                    if self._verbosity >= 1:
                        self._console.print(await self._client.report_text(user_id, session_id))
                    break

                question = step["question"]
                if question["qid"] in presented:
                    result.violations.append(f"question {question['qid']} presented twice")
                presented.append(question["qid"])
            else:
                result.status = "incomplete"
                result.error = f"Exceeded {self._max_steps} steps"

        except httpx.HTTPStatusError as exc:
            result.status = "failed"
            result.error = f"HTTP {exc.response.status_code}: {exc.response.text}"
        except httpx.TimeoutException:
            result.status = "failed"
            result.error = "Request timed out (after retry)"

        if result.violations and result.status == "success":
            result.status = "failed"
            result.error = "; ".join(result.violations)
        return result

    def _finish(self, report: dict, result: SessionResult) -> None:
        result.status = "success"
        top = report.get("top_candidate")
        result.top_candidate = top["code"] if top else None
        result.confidence = report.get("confidence")
        result.urgency = report.get("urgency")

        history = report.get("phase_history", [])
        visited = [history[0]["from_phase"]] + [t["to_phase"] for t in history] if history else []
        if visited != PHASE_ORDER:
            result.violations.append(f"phase order {visited}")
        sizes = [len(t["candidate_codes"]) for t in history]
        if sizes != sorted(sizes, reverse=True):
            result.violations.append(f"candidate sets grew: {sizes}")
        if not report.get("recommended_action") or not report.get("disclaimer"):
            result.violations.append("report missing action or disclaimer")


# ---------------------------------------------------------------------------
# Summary
# ---------------------------------------------------------------------------

def print_summary(console: Console, results: list[SessionResult]) -> None:
    console.print()
    console.rule("[bold]Session Summary")

    passed = sum(1 for r in results if r.status == "success")
    failed = [r for r in results if r.status == "failed"]
    console.print(f"  Total:       {len(results)}")
    console.print(f"  [green]Passed:[/]      {passed}")
    console.print(f"  [red]Failed:[/]      {len(failed)}")
    console.print(f"  [yellow]Incomplete:[/]  {sum(1 for r in results if r.status == 'incomplete')}")

    table = Table(title="Results by Profile", show_lines=True)
    table.add_column("#", style="dim", width=4)
    table.add_column("Profile", min_width=28)
    table.add_column("Run", width=4)
    table.add_column("Status", width=8)
    table.add_column("Answers", width=8)
    table.add_column("Top candidate", min_width=14)
    table.add_column("Conf.", width=7)
    table.add_column("Urgency", width=10)

    for i, r in enumerate(results, 1):
        status = {"success": "[green]OK[/]", "failed": "[red]FAIL[/]"}.get(r.status, "[yellow]INC[/]")
        table.add_row(
            str(i),
            r.profile.label,
            str(r.run_index),
            status,
            str(r.questions_answered),
            r.top_candidate or "-",
            f"{r.confidence:.1f}" if r.confidence is not None else "-",
            r.urgency or "-",
        )
    console.print(table)

    if failed:
        console.rule("[red]Failed Sessions")
        for r in failed:
            console.print(f"  {r.profile.label} (run {r.run_index}): {r.error}")
    console.print()


# ---------------------------------------------------------------------------
# CLI + async main
# ---------------------------------------------------------------------------

def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="API client smoke test for the progressive Dx server.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--base-url", default="http://localhost:8080",
                        help="Server base URL (default: http://localhost:8080)")
    parser.add_argument("-n", "--runs", type=int, default=2,
                        help="Number of random runs per profile (default: 2)")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="-v for questions and report text, -vv for full JSON")
    parser.add_argument("--seed", type=int, default=None,
                        help="RNG seed for reproducibility (default: current timestamp)")
    parser.add_argument("--age-group", choices=list(AGE_GROUPS), default=None,
                        help="Filter by age group (default: all)")
    parser.add_argument("--sex", choices=SEXES, default=None,
                        help="Filter by sex (default: both)")
    parser.add_argument("--present-rate", type=float, default=0.4,
                        help="Probability that each asked symptom is reported present (default: 0.4)")
    parser.add_argument("--max-steps", type=int, default=100,
                        help="Safety limit: max submissions per session (default: 100)")
    parser.add_argument("--timeout", type=float, default=30.0,
                        help="HTTP request timeout in seconds (default: 30)")
    return parser.parse_args()


async def main() -> None:
    args = parse_args()
    console = Console()

    seed = args.seed if args.seed is not None else int(time.time())
    rng = random.Random(seed)
    console.print(f"[dim]RNG seed: {seed}[/]")

    profiles = generate_profiles(args.age_group, args.sex)
    total = len(profiles) * args.runs
    console.print(f"[bold]Running {total} sessions ({len(profiles)} profiles x {args.runs} runs)[/]")

    results: list[SessionResult] = []
    async with APIClient(args.base_url, timeout=args.timeout) as client:
        if not await client.health_check():
            console.print(f"[red]Server at {args.base_url} is not reachable or not ready.[/]")
            sys.exit(1)
        disorder_codes = await client.disorder_codes()

        runner = SessionRunner(
            client, rng, console,
            present_rate=args.present_rate,
            verbosity=args.verbose,
            max_steps=args.max_steps,
        )
        index = 0
        for profile in profiles:
            for run in range(1, args.runs + 1):
                index += 1
                console.print(f"\n[bold cyan][{index}/{total}][/] {profile.label} (run {run}/{args.runs})")
                result = await runner.run(profile, run, disorder_codes)
                if result.error:
                    console.print(f"  [red]ERROR[/] {result.error}")
                results.append(result)

    print_summary(console, results)
    sys.exit(0 if all(r.status == "success" for r in results) else 1)


if __name__ == "__main__":
    asyncio.run(main())
