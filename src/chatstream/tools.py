import functools
import inspect
import re
from typing import Any, Callable

from pydantic import BaseModel, Field


_JSON_TYPES = {
    str: "string",
    int: "integer",
    float: "number",
    bool: "boolean",
    list: "array",
    tuple: "array",
    set: "array",
    dict: "object",
    type(None): "null",
}
_JSON_TYPES_BY_NAME = {t.__name__: v for t, v in _JSON_TYPES.items()}

_GOOGLE_SECTION = re.compile(r"^\s*(Args|Arguments):\s*$")
_GOOGLE_PARAM = re.compile(r"^(\s*)(\w+)(?:\s*\([^)]*\))?:\s*(.*)$")
_REST_PARAM = re.compile(r"^\s*:param\s+(?:\w+\s+)?(\w+):\s*(.*)$")
_NUMPY_PARAM = re.compile(r"^(\s*)(\w+)\s*:\s*.*$")


class ToolCallResult(BaseModel):
    tool_name: str
    output: Any


def _json_type(annotation) -> str:
    # string annotations come from modules using postponed evaluation
    if isinstance(annotation, str):
        return _JSON_TYPES_BY_NAME.get(annotation, "string")
    return _JSON_TYPES.get(annotation, "string")


def _parse_param_descriptions(func: Callable) -> dict[str, str]:
    """Read parameter descriptions from a Google, reST or NumPy docstring."""
    doc = inspect.getdoc(func)
    if not doc:
        return {}
    lines = doc.splitlines()

    rest = {}
    for line in lines:
        match = _REST_PARAM.match(line)
        if match:
            rest[match.group(1)] = match.group(2).strip()
    if rest:
        return rest

    for i, line in enumerate(lines):
        if _GOOGLE_SECTION.match(line):
            return _parse_indented_block(lines[i + 1:], _GOOGLE_PARAM, inline=True)
        if line.strip() == "Parameters" and i + 1 < len(lines) \
                and set(lines[i + 1].strip()) == {"-"}:
            return _parse_indented_block(lines[i + 2:], _NUMPY_PARAM, inline=False)
    return {}


def _parse_indented_block(lines, pattern, inline: bool) -> dict[str, str]:
    descs: dict[str, list[str]] = {}
    param_indent = None
    current = None
    for line in lines:
        if not line.strip():
            if inline:
                break
            continue
        indent = len(line) - len(line.lstrip())
        match = pattern.match(line)
        if match and (param_indent is None or indent == param_indent):
            param_indent = indent
            current = match.group(2)
            descs[current] = [match.group(3).strip()] if inline else []
        elif current is not None and indent > param_indent:
            descs[current].append(line.strip())
        else:
            break
    return {
        name: "\n".join(part for part in parts if part)
        for name, parts in descs.items()
    }


def _build_parameters_schema(func: Callable) -> tuple[dict, list[str]]:
    signature = inspect.signature(func)
    descriptions = _parse_param_descriptions(func)
    properties = {}
    required = []
    for param_name, param in signature.parameters.items():
        if param.kind in (param.VAR_POSITIONAL, param.VAR_KEYWORD):
            continue
        properties[param_name] = {
            "type": _json_type(param.annotation),
            "description": descriptions.get(param_name, ""),
        }
        if param.default is inspect.Parameter.empty:
            required.append(param_name)
    schema = {
        "type": "object",
        "properties": properties,
        "required": required,
    }
    return schema, required


class Tool(BaseModel):
    func: Callable = Field(exclude=True)
    name: str
    description: str = ""
    parameters_schema: dict
    model_config = {"arbitrary_types_allowed": True}

    @classmethod
    def from_function(
        cls,
        func: Callable,
        name: str | None = None,
        description: str | None = None,
    ) -> "Tool":
        schema, _ = _build_parameters_schema(func)
        if description is None:
            doc = inspect.getdoc(func) or ""
            description = doc.split("\n\n")[0].strip()
        return cls(
            func=func,
            name=name or func.__name__,
            description=description,
            parameters_schema=schema,
        )

    def model_dump(self, **kwargs):
        """Override to return the OpenAI function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters_schema,
            },
        }

    def bind(self, **bound) -> "Tool":
        """Pre-fill arguments, hiding them from the model-facing schema."""
        properties = {
            k: v for k, v in self.parameters_schema["properties"].items()
            if k not in bound
        }
        required = [r for r in self.parameters_schema["required"] if r not in bound]
        return Tool(
            func=functools.partial(self.func, **bound),
            name=self.name,
            description=self.description,
            parameters_schema={
                "type": "object",
                "properties": properties,
                "required": required,
            },
        )

    async def __call__(self, **kwargs) -> ToolCallResult:
        output = self.func(**kwargs)
        if inspect.isawaitable(output):
            output = await output
        return ToolCallResult(tool_name=self.name, output=output)


def tool(func: Callable | None = None, *, name: str | None = None,
         description: str | None = None):
    """Turn a plain or async function into a :class:`Tool`.

    Usable bare (``@tool``) or with overrides
    (``@tool(name="x", description="y")``).
    """
    if func is not None:
        return Tool.from_function(func)

    def decorator(f: Callable) -> Tool:
        return Tool.from_function(f, name=name, description=description)
    return decorator


PAGE_TEXT_DESCRIPTION = (
    "Extract the complete text content and structure from the current web "
    "page. Use this tool IMMEDIATELY and PROACTIVELY whenever: the user asks "
    "about 'this page', 'this article', 'here', or references current "
    "content; when discussing, analyzing, or summarizing webpage content; "
    "when the user's question might be answered by page content; when "
    "helping with anything related to the current webpage. Always fetch page "
    "content first before making assumptions. This provides clean, "
    "structured text with headings, links, and context that is essential "
    "for understanding what the user is viewing."
)


async def _get_page_text(source: Callable[[], Any]) -> str:
    text = source()
    if inspect.isawaitable(text):
        text = await text
    if not isinstance(text, str):
        raise ValueError("Failed to extract text from page")
    return text


def page_text_tool(source: Callable[[], Any]) -> Tool:
    """Build the ``get_page_text`` tool around a host text source.

    Args:
        source: Zero-argument callable (plain or async) returning the
            current page's text.
    """
    return Tool.from_function(
        _get_page_text,
        name="get_page_text",
        description=PAGE_TEXT_DESCRIPTION,
    ).bind(source=source)
