from __future__ import annotations

import json
from typing import Any

DELEGATE_MARKER = "USE_TOOL: CODE_EXECUTOR"


def orchestrator_prompt(question: str) -> str:
    return f"""You are an orchestrator AI agent. You can either answer questions directly or delegate tasks to a code execution agent.

Available tool:
- CODE_EXECUTOR: Can write and execute code to interact with APIs (GitHub, email, Slack, CRM, company enrichment), perform computations, or process data

User question: {question}

Decide the best approach:
1. If it's a simple question (greetings, explanations, general knowledge) - answer directly
2. If it requires API calls, data processing, or exact computation - use CODE_EXECUTOR

Respond in this EXACT format:

If answering directly:
ANSWER: <your answer here>

If using code executor:
{DELEGATE_MARKER}
TASK: <describe the specific task for the code executor>

Example:
User: "How many r's in strawberry?"
{DELEGATE_MARKER}
TASK: Count the number of times the letter 'r' appears in the word 'strawberry'"""


def code_generation_prompt(task: str, catalog: str, allowed_imports: list[str]) -> str:
    return f"""You are a code generation agent. Write Python code to solve this specific task.

Available APIs (coroutines, always call them with await and keyword arguments):
{catalog}

Sub-agents (language model calls from inside your code):
- await atp.llm.call(prompt) -> {{"result": text}}
- await atp.llm.call(prompt, schema) -> dict shaped like schema, e.g. schema={{"sentiment": "string", "score": "number"}}
- await gather(*calls) runs coroutines concurrently; use it to process batches in parallel

Task: {task}

IMPORTANT Rules:
- Write ONLY executable Python code, no explanations and no markdown
- The value of the last expression is returned automatically; do not use return at the top level
- Top-level await is allowed
- If you define an async function, call it as the last expression
- Imports are limited to: {", ".join(allowed_imports)}
- Names starting with an underscore, class definitions and str.format are not available; use f-strings
- print(...) output goes to the log, not to the result

Examples:
len([c for c in "strawberry" if c == "r"])

prs = await api.github.list_prs(repo="company/product", state="open")
[pr for pr in prs if pr["checks"] == "failing"]

emails = await api.email.list(limit=5)
summaries = await gather(*(atp.llm.call(f"Summarize: {{e['content']}}", {{"summary": "string"}}) for e in emails))
summaries

Write the code now:"""


def interpret_prompt(question: str, task: str, result: Any) -> str:
    return f"""You delegated a task to a code executor and received this result:

Task: {task}
Result: {json.dumps(result, ensure_ascii=False, default=str)}

Provide a clear, user-friendly answer to the original question: "{question}"

Your response:"""


def structured_output_instruction(schema: dict[str, Any]) -> str:
    return (
        f"Return ONLY valid JSON matching this schema: {json.dumps(schema, ensure_ascii=False)}\n"
        "Do not include any explanations, just the JSON."
    )
