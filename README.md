# ralphx

ralphx is a set of building blocks for an outer loop around Codex and similar
coding agents. A task is a Markdown file, optionally paired with a checklist.
The agent is run one round at a time and must answer each round with a strict
JSON result. The package parses and checks those results, plans and replans
tasks, keeps the loop's state on disk, and decides whether an agent may stop.

The task file is the source of truth. Unchecked checklist items count as hard
remaining work.

## Installation

```
pip install .
```

One command is installed, `ralphx-doctor`:

```
ralphx-doctor
```

It looks up `bash`, `python3`, `git`, `gh`, `codex` and `jq` on your `PATH`
and prints where each one is. It also reports whether `~/.local/bin` is on your
`PATH`. It exits with status 1 when a required tool (`bash`, `python3` or
`codex`) is missing, and with 0 otherwise. The same report is available as
`ralphx.doctor.run_checks(stream)`.

## The round result

`ralphx.contracts.RoundResult` is the JSON object an agent returns each round:

```json
{
  "status": "in_progress | blocked | complete",
  "mode": "execute_next_step | produce_plan | blocked | complete",
  "exit_signal": false,
  "files_modified": 0,
  "tests_passed": false,
  "blockers": [],
  "summary": "short summary",
  "next_step": "required when mode=produce_plan",
  "checklist_update": ["optional items for the next slice"]
}
```

`RoundResult.validate()` raises `ValidationError` in these cases:

- the status or mode is unknown, or `files_modified` is negative
- `in_progress` is paired with a mode other than `execute_next_step` or `produce_plan`
- `execute_next_step` reports no modified files
- `produce_plan` has neither a `next_step` nor a non-blank `checklist_update`
- `blocked` or `complete` is paired with any other mode

`RoundResult.from_dict()` and `to_dict()` convert to and from JSON data.

## Running the agent

```python
from ralphx.agent import AgentError, AgentRequest, CodexAgent
from ralphx.assets import default_prompt, ensure_schema_file

schema = ensure_schema_file(".ralphx")        # writes .ralphx/runtime/loop-output.schema.json
agent = CodexAgent()                           # runs "codex"; pass another command to use it instead
try:
    response = agent.run(
        AgentRequest(workdir=".", prompt=default_prompt(), output_schema_path=schema),
        timeout=1800,
    )
    print(response.parsed.status, response.session_id)
except AgentError as exc:
    print("round failed:", exc, exc.response)
```

When the command is `codex`, it is started with `exec --json` and the output
schema. With a `session_id` it is started with `exec resume`. The prompt goes
in on stdin. If `raw_log_path` is set, the raw output is written to it. The
final agent message and the thread id are taken from the JSON event stream.

`extract_round_result(raw)` returns the first valid `RoundResult` found in any
text. `extract_agent_message_and_session(raw)` does the event-stream part on
its own.

## Tasks and checklists

```python
from ralphx.task import load_bundle, open_checklist_items, mark_checklist_items_done

bundle = load_bundle("tasks/demo.md", summary_path=".ralphx/summary.txt",
                     state_path=".ralphx/state.json")
print(bundle.checklist.path, bundle.checklist.open_items)
for item in open_checklist_items(bundle.checklist.content):
    print(item.index, item.text)
mark_checklist_items_done(bundle.checklist.path, [0])
```

When no checklist path is given and the task file ends in `.md`, the checklist
next to it is used if it exists. For `tasks/demo.md` that is
`tasks/demo.checklist.md`. Open items are lines starting with `- [ ]` or
`* [ ]`. Errors are raised as `TaskError`.

## Planning and replanning

```python
from ralphx.assets import ensure_plan_schema_file
from ralphx.plan import PlanRequest, ensure_log_dir, run_plan, write_files

ensure_log_dir(".ralphx/logs/plan.log")
output, raw = run_plan(PlanRequest(
    goal="add health endpoint",
    workdir=".",
    output_schema_path=ensure_plan_schema_file(".ralphx"),
    raw_log_path=".ralphx/logs/plan.log",
))
task_file, checklist_file = write_files("tasks/health.md", output)
```

`replan(ReplanRequest(...))` builds a new goal from the current task, checklist,
summary and state, then asks the planner again. With `preserve_completed` (the
default), `merge_checklist` keeps the completed items first and then adds the
new items. Items that differ only in case or spacing are kept once.
`checklist_path(task)` gives the checklist path that belongs to a task file.
Failures raise `PlanError`.

## Stop guard

```python
from ralphx.guard import GuardConfig, NoTaskContext, evaluate_stop_guard, load_stop_guard_input

try:
    guard_input = load_stop_guard_input(
        "tasks/demo.md", "", ".ralphx/summary.txt", ".ralphx/state.json",
        ".ralphx/last-result.json", tests_required=True, tests_passed_now=False,
    )
except NoTaskContext:
    ...  # no task given and none recorded in state.json
decision = evaluate_stop_guard(GuardConfig(), guard_input)
print(decision.allow, decision.reason, decision.message)
```

The guard blocks in three cases, checked in this order:

- `task_incomplete`: the last result is `in_progress` or `blocked`
- `checklist_open`: checklist items are still open
- `verification_missing`: verification was required but did not pass

`load_prompt_submit_payload`, `prompt_text` and `prompt_activates_ralphx` read
a prompt-submit hook payload and tell whether the prompt mentions `$ralphx`.

## Run settings

`ralphx.config.parse_run_args(args)` builds a `RunConfig` from flags such as
`--task`, `--checklist`, `--workdir`, `--tests-cmd`, `--codex-bin`,
`--codex-args`, `--workers`, `--max-iterations`, `--max-no-progress`,
`--round-timeout`, `--session-expiry`, `--resume`, `--auto-replan` and
`--state-dir`. It falls back to the environment variables `WORKDIR`,
`CHECKLIST_FILE`, `PROMPT_FILE`, `OUTPUT_SCHEMA_FILE`, `TESTS_CMD`,
`CODEX_CMD`, `CODEX_ARGS`, `RALPHX_WORKERS`, `MAX_ITERATIONS`,
`MAX_NO_PROGRESS`, `ROUND_TIMEOUT_SECONDS`, `RALPHX_RESUME_SESSION`,
`SESSION_EXPIRY_HOURS` and `RALPHX_AUTO_REPLAN`. It returns `None` after
printing help, and raises `ArgumentError` on bad flags. Durations are parsed by
`parse_duration`, for example `90s`, `45m` or `1h30m`.

## Other pieces

- `ralphx.state`: the loop's files under `<workdir>/.ralphx`, or another
  directory you give. These are `state.json`, `last-result.json`,
  `last-output.txt`, `summary.txt`, `stats.json`, `session.json`, `logs/`,
  `workers/` and `results/`. It also holds their readers and writers, and
  `session_fresh` for deciding whether a saved session may be resumed.
- `ralphx.parallel.LocalScheduler`: runs a list of `Job`s on a thread pool and
  returns the `WorkerResult`s in job order.
- `ralphx.execx.run_command`: runs a command with combined output and raises
  `CommandError` on failure or timeout.
- `ralphx.validate.run_validation`: runs a validation command through
  `bash -lc`, logs its output and raises `ValidationFailed` on failure.
- `ralphx.vcs.capture_status_snapshot`: returns the sorted `git status --short`
  of a directory.
- `ralphx.current.report`: prints the installed version and binary from
  `current.env` in `$RALPHX_CONFIG_DIR` (default `~/.config/ralphx`).
- `ralphx.version.version_string`: the version banner.

## What this package does not do

- There is no `ralphx` command, so there are no `run`, `plan`, `replan`, `hook`
  or `skill` subcommands. Only `ralphx-doctor` is installed.
- There is no loop that drives the agent round after round. The package does
  not apply completion gates, produce-plan updates or auto-replan between
  rounds.
- The package does not assemble the per-round prompt from the task, checklist
  and git status. `assets.default_prompt()` supplies only the base text.
- The package does not log hook events, and it does not install or remove
  hooks in `~/.codex/hooks.json`.