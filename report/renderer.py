"""
Report renderer: turn ranked repository score tables into text, Markdown, CSV, JSON and HTML.
HTML is rendered with Jinja2 from report/templates/report.html.j2.
"""

from typing import Optional, List, Dict, Mapping
from datetime import datetime, timezone
import os
import io
import csv
import json
from jinja2 import Environment, FileSystemLoader, select_autoescape
from normalize.models import ActivityRecord, RankedScore
from storage.user_info import display_label

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), 'templates')

TABLE_HEADERS = ['Rank', 'Participant', 'feat/bug PR', 'doc PR', 'typo PR', 'feat/bug issue', 'doc issue', 'Total', 'Rate(%)']

CSV_HEADER = [
    'name',
    'feat/bug PR count', 'feat/bug PR score',
    'doc PR count', 'doc PR score',
    'typo PR count', 'typo PR score',
    'feat/bug issue count', 'feat/bug issue score',
    'doc issue count', 'doc issue score',
    'total',
]

EXTENSIONS = {'text': 'txt', 'md': 'md', 'csv': 'csv', 'json': 'json', 'html': 'html'}
FORMATS = tuple(EXTENSIONS)

MIN_NAME_WIDTH = 20


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec='seconds')


def _label(login: str, users_info: Optional[Mapping[str, str]]) -> str:
    return display_label(login, users_info) if users_info else login


def _row_cells(row: RankedScore, users_info: Optional[Mapping[str, str]]) -> List[str]:
    return [
        str(row.rank),
        _label(row.participant, users_info),
        str(row.pr_feature_score),
        str(row.pr_doc_score),
        str(row.pr_typo_score),
        str(row.issue_feature_score),
        str(row.issue_doc_score),
        str(row.total_score),
        f"{row.rate}%",
    ]


def render_text(repo_name: str, rows: List[RankedScore], users_info: Optional[Mapping[str, str]] = None, generated_at: Optional[str] = None) -> str:
    """Render a fixed-width plain-text table for one repository."""
    body = [_row_cells(r, users_info) for r in rows]
    widths = [len(h) for h in TABLE_HEADERS]
    widths[1] = max(widths[1], MIN_NAME_WIDTH)
    for cells in body:
        widths = [max(w, len(c)) for w, c in zip(widths, cells)]

    sep = '+' + '+'.join('-' * (w + 2) for w in widths) + '+'

    def fmt_line(cells: List[str]) -> str:
        # participant column left aligned, numbers right aligned
        parts = [f" {c.ljust(w) if i == 1 else c.rjust(w)} " for i, (c, w) in enumerate(zip(cells, widths))]
        return '|' + '|'.join(parts) + '|'

    lines = [
        f"Contribution Score by Participant: {repo_name}",
        f"Generated at {generated_at or _now()}",
        sep,
        fmt_line(TABLE_HEADERS),
        sep,
    ]
    lines.extend(fmt_line(cells) for cells in body)
    lines.append(sep)
    return "\n".join(lines)


def render_markdown(repo_name: str, rows: List[RankedScore], users_info: Optional[Mapping[str, str]] = None, generated_at: Optional[str] = None) -> str:
    """Render a Markdown table for one repository."""
    md = [f"# Contribution Score: {repo_name}\n", f"_Generated at {generated_at or _now()}_\n"]
    md.append('| ' + ' | '.join(TABLE_HEADERS) + ' |')
    md.append('|' + '|'.join(['---:'] + [':---'] + ['---:'] * (len(TABLE_HEADERS) - 2)) + '|')
    for r in rows:
        cells = _row_cells(r, users_info)
        cells[1] = cells[1].replace('|', '\\|')
        md.append('| ' + ' | '.join(cells) + ' |')
    if not rows:
        md.append('\n_No participants._')
    return "\n".join(md)


def render_csv(rows: List[RankedScore], records: Optional[Mapping[str, ActivityRecord]] = None, users_info: Optional[Mapping[str, str]] = None) -> str:
    """Render raw counts next to scores, one line per participant in ranking order."""
    output = io.StringIO()
    writer = csv.writer(output, lineterminator='\n')
    writer.writerow(CSV_HEADER)
    for r in rows:
        record = (records or {}).get(r.participant) or ActivityRecord()
        prs, issues = record.pull_requests, record.issues
        writer.writerow([
            _label(r.participant, users_info),
            prs['bug_and_feat'], r.pr_feature_score,
            prs['doc'], r.pr_doc_score,
            prs['typo'], r.pr_typo_score,
            issues['bug_and_feat'], r.issue_feature_score,
            issues['doc'], r.issue_doc_score,
            r.total_score,
        ])
    return output.getvalue()


def rows_to_dicts(rows: List[RankedScore], users_info: Optional[Mapping[str, str]] = None) -> List[Dict]:
    out = []
    for r in rows:
        d = r._asdict()
        d['display_name'] = _label(r.participant, users_info)
        out.append(d)
    return out


def render_json(repo_name: str, rows: List[RankedScore], records: Optional[Mapping[str, ActivityRecord]] = None, users_info: Optional[Mapping[str, str]] = None) -> str:
    """Export ranked rows, and raw counts when available, as JSON."""
    doc = {'repository': repo_name, 'scores': rows_to_dicts(rows, users_info)}
    if records is not None:
        doc['activity'] = {login: rec.to_dict() for login, rec in records.items()}
    return json.dumps(doc, indent=2, ensure_ascii=False)


def render_html(repo_name: str, rows: List[RankedScore], users_info: Optional[Mapping[str, str]] = None, generated_at: Optional[str] = None, average: Optional[float] = None) -> str:
    env = Environment(loader=FileSystemLoader(TEMPLATES_DIR), autoescape=select_autoescape(['html', 'xml', 'j2']))
    tmpl = env.get_template('report.html.j2')
    return tmpl.render(
        repo_name=repo_name,
        headers=TABLE_HEADERS,
        rows=[_row_cells(r, users_info) for r in rows],
        generated_at=generated_at or _now(),
        average=average,
    )


def render(
    fmt: str,
    repo_name: str,
    rows: List[RankedScore],
    records: Optional[Mapping[str, ActivityRecord]] = None,
    users_info: Optional[Mapping[str, str]] = None,
    generated_at: Optional[str] = None,
    average: Optional[float] = None,
) -> str:
    """Render one repository's table in the given format (text, md, csv, json, html)."""
    fmt_l = (fmt or 'text').lower()
    if fmt_l in ('md', 'markdown'):
        return render_markdown(repo_name, rows, users_info, generated_at)
    if fmt_l == 'csv':
        return render_csv(rows, records, users_info)
    if fmt_l in ('html', 'htm'):
        return render_html(repo_name, rows, users_info, generated_at, average)
    if fmt_l == 'json':
        return render_json(repo_name, rows, records, users_info)
    if fmt_l in ('text', 'txt'):
        return render_text(repo_name, rows, users_info, generated_at)
    raise ValueError(f"Unknown output format: {fmt}")


def write_reports(
    tables: Mapping[str, List[RankedScore]],
    participants: Mapping[str, Mapping[str, ActivityRecord]],
    formats: List[str],
    out_dir: str = '.',
    users_info: Optional[Mapping[str, str]] = None,
    averages: Optional[Mapping[str, Optional[float]]] = None,
) -> List[str]:
    """Write <out_dir>/<repo>/<repo>.<ext> for every repository and format; return the paths."""
    generated_at = _now()
    written = []
    for repo_name, rows in tables.items():
        repo_dir = os.path.join(out_dir, repo_name)
        os.makedirs(repo_dir, exist_ok=True)
        for fmt in formats:
            content = render(fmt, repo_name, rows, participants.get(repo_name), users_info, generated_at, (averages or {}).get(repo_name))
            path = os.path.join(repo_dir, f"{repo_name}.{EXTENSIONS[fmt]}")
            # newline='' keeps CSV line endings as written
            with open(path, 'w', encoding='utf-8', newline='') as fh:
                fh.write(content)
            written.append(path)
    return written
