from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

# Class declaration: [access] [modifiers] class Name[<T>][(ctor args)] [: bases] [{]
_CLASS_DECL = re.compile(
    r"(?:\b(?:public|private|protected|internal)\s+)?"
    r"(?:\b(?:static|abstract|sealed|partial)\s+)*"
    r"\bclass\s+(?P<name>\w+)"
    r"\s*(?:<[^>]*>)?"
    r"\s*(?:\([^)]*\))?"
    r"\s*(?::\s*[\w<>,.\s]+)?"
    r"\s*(?:\{|//|$)"
)

# Method declaration: access [modifiers] ReturnType Name[<T>](
_METHOD_DECL = re.compile(
    r"\b(?:public|private|protected|internal)\s+"
    r"(?:(?:static|virtual|override|abstract|sealed|new|async|extern|unsafe)\s+)*"
    r"(?!(?:class|struct|record|interface|enum|delegate|event)\b)"
    r"(?P<return>[\w.]+(?:\s*<[^()]*>)?(?:\[\])*\??)\s+"
    r"(?P<name>\w+)\s*(?:<[^()]*>)?\s*\("
)

_CLASS_TOKEN = re.compile(r"\bclass\b")
_STRING_LITERAL = re.compile(r'@?"(?:[^"\\]|\\.)*"')


@dataclass(frozen=True)
class ControllerDecl:
    name: str
    line_index: int  # 0-based
    base_route: Optional[str]
    body_end: int  # line index where the body closes (len(lines) if never)

    def contains(self, line_index: int) -> bool:
        return self.line_index < line_index < self.body_end


@dataclass(frozen=True)
class MethodDecl:
    name: str
    return_type: str
    start: int
    open_paren: int  # column of the parameter list's "("


def split_lines(text: str) -> list[str]:
    return text.replace("\r\n", "\n").replace("\r", "\n").split("\n")


def is_comment_line(line: str) -> bool:
    s = line.strip()
    return s.startswith("//") or s.startswith("/*") or s.startswith("*")


def code_only(line: str) -> str:
    """Line with string literals blanked and any trailing // comment removed."""
    code = _STRING_LITERAL.sub('""', line)
    idx = code.find("//")
    return code if idx < 0 else code[:idx]


def has_class_token(line: str) -> bool:
    return _CLASS_TOKEN.search(code_only(line)) is not None


def match_class_declaration(line: str) -> Optional[tuple[str, int]]:
    """(class name, column where the declaration starts) or None."""
    if is_comment_line(line):
        return None
    m = _CLASS_DECL.search(line)
    return (m.group("name"), m.start()) if m else None


def match_method_declaration(line: str) -> Optional[MethodDecl]:
    if is_comment_line(line):
        return None
    m = _METHOD_DECL.search(line)
    if m is None:
        return None
    return MethodDecl(
        name=m.group("name"),
        return_type=m.group("return").strip(),
        start=m.start(),
        open_paren=m.end() - 1,
    )


def is_member_boundary(line: str) -> bool:
    """A line that ends the previous member: a declaration or a closing statement."""
    if match_method_declaration(line) is not None:
        return True
    code = code_only(line).rstrip()
    return code.endswith(("{", "}", ";"))


def find_body_end(lines: list[str], start: int) -> int:
    """
    Index of the line where brace depth returns to zero after the first "{" at or
    below ``start``; ``len(lines)`` for an unterminated body.
    """
    depth = 0
    opened = False
    for i in range(start, len(lines)):
        for ch in code_only(lines[i]):
            if ch == "{":
                depth += 1
                opened = True
            elif ch == "}":
                depth -= 1
                if opened and depth == 0:
                    return i
    return len(lines)
