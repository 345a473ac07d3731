"""Instruction content written into each assistant's rule file."""

from __future__ import annotations

CORE_INSTRUCTIONS = """\
## threadkeep Context Integration

threadkeep records your working intent, decisions and progress per branch so
the next session (in any assistant) can pick up where this one stopped.

### On Session Start
When beginning work or when the user says `/resume-context`:
1. Run: `threadkeep resume`
2. Read the briefing: what was being worked on, what was tried, what was decided
3. Tell the user: "I've loaded your context. You were working on [task], left off at [state]. Ready to continue?"
4. **Do not re-decide** things that were already decided unless explicitly asked

### On Task Completion
Before finishing a task, handing off, or when the user says `/save-context`:
1. Extract from the conversation:
   - **task**: what was worked on (one line)
   - **approaches**: what was tried, failed attempts included
   - **decisions**: key design decisions with their reasoning
   - **state**: where things ended up
   - **next steps**: what comes next
   - **blockers**: anything blocking progress
2. Save it (list values are separated by `;;`):
```bash
threadkeep save "TASK_SUMMARY" \\
  --approaches "approach 1;; approach 2" \\
  --decisions "decision 1;; decision 2" \\
  --state "Current state" \\
  --next-steps "step 1;; step 2" \\
  --blockers "blocker 1"
```
3. Confirm to the user what was saved

### Auto-Extract Mode
For quick saves, let threadkeep read your session artifacts itself:
```bash
threadkeep save --auto
```

### Key Principles
- **Be thorough**: include failed approaches so they are not repeated
- **Be specific**: "Using RS256 for JWT signing" beats "configured auth"
- **Capture reasoning**: "Chose Postgres over MongoDB because we need transactions"
- **Don't ask the user to summarize**: extract it from the conversation yourself"""

MCP_TOOLS = """\
- `threadkeep_resume`: context briefing for the current branch
- `threadkeep_save`: save context with structured fields
- `threadkeep_log`: context history"""

CURSOR_FRONTMATTER = """\
---
description: threadkeep - persistent AI coding context across sessions
globs: ["**/*"]
alwaysApply: true
---"""

TRAE_FRONTMATTER = """\
---
description: threadkeep - persistent AI coding context across sessions
---"""


def claude_code_rules() -> str:
    return f"""\
{CORE_INSTRUCTIONS}

### MCP Integration (Preferred)
If the threadkeep MCP server is configured, prefer the MCP tools:
{MCP_TOOLS}

### Slash Commands
- `/resume-context`: load and acknowledge saved context
- `/save-context`: extract and save context from this conversation"""


def cursor_rules() -> str:
    return f"""\
{CURSOR_FRONTMATTER}

{CORE_INSTRUCTIONS}

### MCP Integration (Preferred)
If the threadkeep MCP server is configured in `.cursor/mcp.json`, prefer the MCP tools:
{MCP_TOOLS}"""


def antigravity_rules() -> str:
    return f"""\
{CORE_INSTRUCTIONS}

### Antigravity Notes
- threadkeep reads your `task.md`, `implementation_plan.md` and `walkthrough.md` artifacts
- Use `threadkeep save --auto` to capture checklist progress and `[!NOTE]` decisions"""


def antigravity_dir_rules() -> str:
    return f"# threadkeep\n\n{antigravity_rules()}"


def opencode_rules() -> str:
    return f"""\
{CORE_INSTRUCTIONS}

### MCP Integration (Preferred)
If the threadkeep MCP server is configured, prefer the MCP tools over CLI commands."""


def trae_rules() -> str:
    return f"{TRAE_FRONTMATTER}\n\n{CORE_INSTRUCTIONS}"


def warp_rules() -> str:
    return f"""\
# threadkeep

{CORE_INSTRUCTIONS}

### Warp Notes
- Warp has no formal rule loading; this file is documentation for the operator
- Run `threadkeep resume` at session start and share the output with the agent
- Before ending a session, run `threadkeep save --auto` or the full structured save"""
