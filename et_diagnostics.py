#  SPDX-License-Identifier: MIT OR Apache-2.0
#  Copyright (c) 2025-2026 gwz

import os
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from et_ast import Node
from et_lexer import Token


DIAGNOSTIC_CODE_FAMILIES = {
    "LEX": [
        "LEX-0010",
        "LEX-0020",
        "LEX-0030",
        "LEX-0040",
        "LEX-0070",
    ],
    "PAR": [
        "PAR-0010",
        "PAR-0011",
        "PAR-0012",
        "PAR-0020",
        "PAR-0030",
        "PAR-0040",
        "PAR-0041",
        "PAR-0050",
        "PAR-0051",
        "PAR-0060",
        "PAR-0070",
        "PAR-0080",
        "PAR-0081",
        "PAR-0082",
        "PAR-0083",
        "PAR-0090",
        "PAR-0091",
        "PAR-0100",
        "PAR-0101",
        "PAR-0102",
        "PAR-0103",
        "PAR-0104",
        "PAR-0110",
        "PAR-0111",
        "PAR-0112",
        "PAR-0113",
        "PAR-0114",
        "PAR-0115",
        "PAR-0116",
        "PAR-0117",
        "PAR-0120",
        "PAR-0121",
        "PAR-0122",
        "PAR-0123",
        "PAR-0124",
        "PAR-0125",
        "PAR-0130",
        "PAR-0131",
        "PAR-0132",
        "PAR-0133",
        "PAR-0134",
        "PAR-0140",
        "PAR-0141",
        "PAR-0150",
        "PAR-0151",
        "PAR-0152",
        "PAR-0160",
        "PAR-0161",
        "PAR-0162",
        "PAR-0163",
        "PAR-0170",
        "PAR-0171",
        "PAR-0172",
        "PAR-0173",
        "PAR-0174",
        "PAR-0175",
        "PAR-0176",
        "PAR-0180",
        "PAR-0181",
        "PAR-0182",
        "PAR-0183",
        "PAR-0184",
        "PAR-0185",
        "PAR-0190",
        "PAR-0191",
        "PAR-0192",
        "PAR-0200",
        "PAR-0201",
        "PAR-0210",
        "PAR-0211",
        "PAR-0212",
        "PAR-0213",
        "PAR-0214",
        "PAR-0220",
        "PAR-0221",
        "PAR-0222",
        "PAR-0223",
        "PAR-0225",
    ],
    "DRV": [
        "DRV-0010",
        "DRV-0020",
        "DRV-0030",
    ],
    "CHK": [
        "CHK-0010",
        "CHK-0020",
        "CHK-0030",
        "CHK-0040",
        "CHK-0050",
    ],
    "RET": [
        "RET-0010",
        "RET-0011",
    ],
    "AST": [
        "AST-0010",
        "AST-0011",
    ],
    "SWT": [
        "SWT-0010",
        "SWT-0011",
    ],
    "ASX": [
        "ASX-0010",
        "ASX-0011",
    ],
    "GEN": [
        "GEN-0010",
        "GEN-0011",
    ],
    "UND": [
        "UND-0010",
        "UND-0011",
    ],
    "ARG": [
        "ARG-0010",
        "ARG-0020",
    ],
    "STY": [
        "STY-0010",
    ],
    "INT": [
        "INT-0010",
    ],
}

# Families produced by the front end; any of them makes a package unusable.
FRONT_END_FAMILIES = ("LEX", "PAR", "DRV", "CHK")

_CODE_RE = re.compile(r"^\[([A-Z]{3})-(\d{4})\]")


def code_of(message: str) -> Optional[str]:
    """Return the bracketed code a message starts with, e.g. "RET-0010"."""
    m = _CODE_RE.match(message)
    if m is None:
        return None
    return f"{m.group(1)}-{m.group(2)}"


@dataclass
class Diagnostic:
    kind: str  # "error" or "warning"
    message: str
    module_name: Optional[str] = None  # package path
    filename: Optional[str] = None  # file path
    category: Optional[str] = None  # short slug, e.g. "ret", "err+"

    # Primary location (start of the span)
    line: Optional[int] = None
    column: Optional[int] = None

    # Optional end of span (exclusive)
    end_line: Optional[int] = None
    end_column: Optional[int] = None

    @property
    def code(self) -> Optional[str]:
        return code_of(self.message)

    @property
    def is_front_end(self) -> bool:
        code = self.code
        return code is not None and code[:3] in FRONT_END_FAMILIES

    # Return the one-line header; snippets will be printed at the call site
    def format(self) -> str:
        loc = ""
        if self.filename is not None:
            loc += f"{os.path.abspath(str(self.filename))}"
        if self.line is not None:
            loc += f":{self.line}"
            if self.column is not None:
                loc += f":{self.column}"
            if self.module_name is not None:
                loc += f"({self.module_name})"
        if loc:
            loc += ": "
        return f"{loc}{self.kind}: {self.message}"

    def to_json(self) -> Dict[str, Any]:
        posn = ""
        if self.filename is not None:
            posn = str(self.filename)
            if self.line is not None:
                posn += f":{self.line}"
                if self.column is not None:
                    posn += f":{self.column}"
        result: Dict[str, Any] = {"posn": posn, "message": self.message}
        if self.category is not None:
            result["category"] = self.category
        return result

    def sort_key(self):
        return (self.filename or "", self.line or 0, self.column or 0)


def diag_from_node(
        kind: str,
        message: str,
        *,
        module_name: Optional[str],
        filename: Optional[str],
        node: Optional[Node],
        category: Optional[str] = None,
) -> Diagnostic:
    line = column = end_line = end_column = None
    if node is not None and node.span is not None:
        s = node.span
        line = s.start_line
        column = s.start_column
        end_line = s.end_line
        end_column = s.end_column
    return Diagnostic(
        kind=kind,
        message=message,
        module_name=module_name,
        filename=filename,
        category=category,
        line=line,
        column=column,
        end_line=end_line,
        end_column=end_column,
    )


def diag_from_token(
        kind: str,
        message: str,
        *,
        module_name: Optional[str],
        filename: Optional[str],
        token: Optional[Token],
) -> Diagnostic:
    line = column = None
    if token is not None:
        line = token.line
        column = token.column
    return Diagnostic(
        kind=kind,
        message=message,
        module_name=module_name,
        filename=filename,
        line=line,
        column=column,
    )


def has_error_code(diagnostics: List[Diagnostic], code: str) -> bool:
    return any(d.code == code for d in diagnostics)
