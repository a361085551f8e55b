"""Prompt compilation: Instruction, Context and Data sections in order."""

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from .templating import expand, long_datetime

SECTION_SEPARATOR = "\n\n"


@dataclass
class PromptInputs:
    """Everything the compiled prompt depends on, apart from the clock."""
    instruction: str = ""
    extra_instruction: str = ""
    context: str = ""
    data: str = ""

    def has_content(self) -> bool:
        """At least one of Data, Instruction or Context is non-empty."""
        return any(part.strip() for part in (self.instruction, self.context, self.data))


def _section(label: str, body: str) -> str:
    return f"{label}:\n{body}"


def context_body(context: str, now: datetime, region: Optional[str]) -> str:
    """User context (expanded) followed by the injected time and region facts."""
    lines = []
    expanded = expand(context, now, region).strip()
    if expanded:
        lines.append(expanded)
    lines.append(f"Right now it's {long_datetime(now, region)}")
    if region:
        lines.append(f"My region is {region}")
    return "\n".join(lines)


def compile_prompt(
    instruction: str,
    extra_instruction: str,
    context: str,
    data: str,
    now: Optional[datetime] = None,
    region: Optional[str] = None,
) -> str:
    """
    Assemble the compiled prompt.

    Empty Instruction, Additional Instructions and Data sections are left
    out; Context is always present because it carries the current time.
    The joined text gets a final template pass for placeholders pasted
    into the context after the first expansion.
    """
    now = now or datetime.now()
    sections: List[str] = []

    instruction_text = expand(instruction, now, region).strip()
    if instruction_text:
        sections.append(_section("Instruction", instruction_text))

    extra_text = expand(extra_instruction, now, region).strip()
    if extra_text:
        sections.append(_section("Additional Instructions", extra_text))

    sections.append(_section("Context", context_body(context, now, region)))

    data_text = data.strip()
    if data_text:
        sections.append(_section("Data", data_text))

    return expand(SECTION_SEPARATOR.join(sections), now, region)


def compile_inputs(
    inputs: PromptInputs,
    now: Optional[datetime] = None,
    region: Optional[str] = None,
) -> str:
    return compile_prompt(
        inputs.instruction,
        inputs.extra_instruction,
        inputs.context,
        inputs.data,
        now=now,
        region=region,
    )
