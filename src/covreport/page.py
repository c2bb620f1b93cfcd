"""
Rendering of the report to one self-contained HTML file.

Figures are embedded as base64 PNG so the page has no side files;
tables go through DataFrame.to_html.
"""
from __future__ import annotations
import base64
import html
import io
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

import pandas as pd
from matplotlib.figure import Figure

CSS = """
body { font-family: -apple-system, "Segoe UI", Helvetica, Arial, sans-serif;
       max-width: 960px; margin: 2em auto; padding: 0 1em; color: #222; line-height: 1.5; }
h1 { border-bottom: 2px solid #ddd; padding-bottom: .3em; }
h2 { margin-top: 2em; }
table.dataframe { border-collapse: collapse; font-size: .9em; margin: 1em 0; }
table.dataframe th, table.dataframe td { border: 1px solid #ccc; padding: .3em .6em; text-align: right; }
table.dataframe th { background: #f3f3f3; }
figure { margin: 1.5em 0; }
figure img { max-width: 100%; }
figcaption, .meta { color: #666; font-size: .9em; }
"""


def figure_to_png(fig: Figure, dpi: int = 110) -> bytes:
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight")
    return buf.getvalue()


@dataclass
class Block:
    kind: str                   # "heading" | "text" | "figure" | "table"
    content: Union[str, bytes, pd.DataFrame]
    caption: Optional[str] = None


@dataclass
class HtmlReport:
    title: str
    blocks: List[Block] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    def heading(self, text: str) -> None:
        self.blocks.append(Block("heading", text))

    def text(self, text: str) -> None:
        self.blocks.append(Block("text", text))

    def figure(self, png: bytes, caption: Optional[str] = None) -> None:
        self.blocks.append(Block("figure", png, caption))

    def table(self, df: pd.DataFrame, caption: Optional[str] = None) -> None:
        self.blocks.append(Block("table", df, caption))

    def _render_block(self, block: Block) -> str:
        if block.kind == "heading":
            return f"<h2>{html.escape(block.content)}</h2>"
        if block.kind == "text":
            return f"<p>{html.escape(block.content)}</p>"
        if block.kind == "figure":
            data = base64.b64encode(block.content).decode("ascii")
            alt = html.escape(block.caption or "figure")
            cap = f"<figcaption>{alt}</figcaption>" if block.caption else ""
            return f'<figure><img src="data:image/png;base64,{data}" alt="{alt}">{cap}</figure>'
        if block.kind == "table":
            cap = f"<p class='meta'>{html.escape(block.caption)}</p>" if block.caption else ""
            return block.content.to_html(index=False, float_format=lambda x: f"{x:,.2f}",
                                         border=0, na_rep="") + cap
        raise ValueError(f"Unknown block kind: {block.kind}")

    def render(self, generated: Optional[datetime] = None) -> str:
        generated = generated or datetime.now()
        body = "\n".join(self._render_block(b) for b in self.blocks)
        source_items = "".join(f"<li>{html.escape(s)}</li>" for s in self.sources)
        return (
            "<!DOCTYPE html>\n<html lang='en'>\n<head>\n<meta charset='utf-8'>\n"
            f"<title>{html.escape(self.title)}</title>\n<style>{CSS}</style>\n</head>\n<body>\n"
            f"<h1>{html.escape(self.title)}</h1>\n"
            f"<p class='meta'>Generated {generated:%Y-%m-%d %H:%M}</p>\n"
            f"{body}\n"
            f"<h2>Data sources</h2>\n<ul>{source_items}</ul>\n"
            "</body>\n</html>\n"
        )

    def write(self, path: Path, generated: Optional[datetime] = None) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(generated), encoding="utf-8")
        return path
