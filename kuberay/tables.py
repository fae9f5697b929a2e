"""Rows and bordered text tables for listing clusters and compute templates."""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Iterable, Sequence

from kuberay import model as api

CLUSTER_HEADER = [
    "Name",
    "User",
    "Namespace",
    "Created At",
    "Version",
    "Environment",
    "Head Image",
    "Head Compute Template",
    "Head Service Type",
]
WORKER_GROUP_HEADER = ["Worker Group Name", "Worker Image", "Worker ComputeTemplate"]
COMPUTE_TEMPLATE_HEADER = ["Name", "CPU", "Memory", "GPU", "GPU-Accelerator"]

_MAX_CELL_WIDTH = 30
_DECIMAL = re.compile(r"^-?(?:\d{1,3}(?:,\d{3})*|\d+)(?:\.\d+)?$")
_EPOCH = datetime.fromtimestamp(0, timezone.utc)


def _time_string(value: datetime | None) -> str:
    if value is None:
        value = _EPOCH
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    text = value.strftime("%Y-%m-%d %H:%M:%S")
    if value.microsecond:
        text += "." + f"{value.microsecond:06d}".rstrip("0")
    return f"{text} +0000 UTC"


def _environment_name(environment: int) -> str:
    try:
        return api.Environment(environment).name
    except ValueError:
        return str(int(environment))


def cluster_header(worker_groups: int) -> list[str]:
    """The cluster table header, widened for ``worker_groups`` worker groups."""
    return CLUSTER_HEADER + WORKER_GROUP_HEADER * worker_groups


def convert_cluster_to_strings(cluster: api.Cluster) -> tuple[list[str], int]:
    """Return one table row for the cluster and its number of worker groups."""
    head = cluster.cluster_spec.head_group_spec
    workers = cluster.cluster_spec.worker_group_spec
    row = [
        cluster.name,
        cluster.user,
        cluster.namespace,
        _time_string(cluster.created_at),
        cluster.version,
        _environment_name(cluster.environment),
        head.image,
        head.compute_template,
        head.service_type,
    ]
    for worker in workers:
        row.extend([worker.group_name, worker.image, worker.compute_template])
    return row, len(workers)


def convert_clusters_to_strings(clusters: Iterable[api.Cluster]) -> tuple[list[list[str]], int]:
    """Return rows for all clusters and the largest number of worker groups among them."""
    rows: list[list[str]] = []
    widest = 0
    for cluster in clusters:
        row, groups = convert_cluster_to_strings(cluster)
        rows.append(row)
        widest = max(widest, groups)
    return rows, widest


def convert_compute_template_to_strings(template: api.ComputeTemplate) -> list[str]:
    return [
        template.name,
        str(template.cpu),
        str(template.memory),
        str(template.gpu),
        template.gpu_accelerator,
    ]


def convert_compute_templates_to_strings(templates: Iterable[api.ComputeTemplate]) -> list[list[str]]:
    return [convert_compute_template_to_strings(template) for template in templates]


def _is_num_or_space(char: str) -> bool:
    return char.isdigit() or char == " "


def _title(name: str) -> str:
    chars = list(name)
    for index, char in enumerate(chars):
        if char == "_":
            chars[index] = " "
        elif char == ".":
            before = index != 0 and not _is_num_or_space(chars[index - 1])
            after = index != len(chars) - 1 and not _is_num_or_space(chars[index + 1])
            if before or after:
                chars[index] = " "
    text = "".join(chars).strip()
    if not text and name:
        text = " "
    return text.upper()


def _wrap(line: str) -> list[str]:
    if len(line) <= _MAX_CELL_WIDTH:
        return [line]
    words = line.split()
    if not words:
        return [line.strip()]
    limit = max(_MAX_CELL_WIDTH, max(len(word) for word in words))
    lines: list[str] = []
    current = words[0]
    for word in words[1:]:
        if len(current) + 1 + len(word) <= limit:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word
    lines.append(current)
    return lines


def _cell_lines(text: str) -> list[str]:
    return [wrapped for line in text.split("\n") for wrapped in _wrap(line)]


def _center(text: str, width: int) -> str:
    gap = width - len(text)
    if gap <= 0:
        return text
    left = gap // 2
    return " " * left + text + " " * (gap - left)


def _align(text: str, width: int) -> str:
    if _DECIMAL.match(text.strip()):
        return text.rjust(width)
    return text.ljust(width)


def render_table(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Render a bordered table with an upper-case centred header."""
    titles = [_title(name) for name in header]
    rows = [list(row) for row in rows]
    columns = max([len(titles)] + [len(row) for row in rows])
    cells = [
        [_cell_lines(row[index] if index < len(row) else "") for index in range(columns)]
        for row in rows
    ]
    widths = []
    for index in range(columns):
        candidates = [len(titles[index])] if index < len(titles) else [0]
        candidates.extend(len(line) for row in cells for line in row[index])
        widths.append(max(candidates))

    border = "+" + "+".join("-" * (width + 2) for width in widths) + "+"
    out = [border]
    if titles:
        padded = titles + [""] * (columns - len(titles))
        out.append("|" + "".join(f" {_center(t, w)} |" for t, w in zip(padded, widths)))
        out.append(border)
    for row in cells:
        height = max((len(lines) for lines in row), default=1)
        for line_index in range(height):
            parts = []
            for lines, width in zip(row, widths):
                text = lines[line_index] if line_index < len(lines) else ""
                parts.append(f" {_align(text, width)} |")
            out.append("|" + "".join(parts))
    out.append(border)
    return "\n".join(out) + "\n"