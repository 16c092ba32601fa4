"""Serialize a structured report into one of the supported output formats."""

import csv
import io
import json
import logging
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Tuple

from account_reports.jobs.models import OutputFormat

logger = logging.getLogger(__name__)

DEFAULT_FORMAT = OutputFormat.JSON

_ITEM_SECTIONS = (("contacts", "contact"), ("opportunities", "opportunity"), ("cases", "case"))


@dataclass(frozen=True)
class FormattedReport:
    data: bytes
    extension: str
    media_type: str


def render_json(report: Dict[str, Any]) -> bytes:
    return json.dumps(report, indent=2, default=str).encode("utf-8")


def render_csv(report: Dict[str, Any]) -> bytes:
    """Long-form CSV: one ``record_type,record_id,field,value`` row per value."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["record_type", "record_id", "field", "value"])
    writer.writerow(["report", "", "account_id", report.get("account_id", "")])
    writer.writerow(["report", "", "generated_at", report.get("generated_at", "")])
    writer.writerow(
        ["report", "", "include_extended_history", _cell(report.get("include_extended_history", False))]
    )
    for field, value in _flatten(report.get("summary", {})):
        writer.writerow(["summary", "", field, _cell(value)])
    for section, record_type in _ITEM_SECTIONS:
        for item in report.get(section, []):
            record_id = item.get("id", "")
            for field, value in _flatten(item):
                if field == "id":
                    continue
                writer.writerow([record_type, record_id, field, _cell(value)])
    return buffer.getvalue().encode("utf-8")


def render_xml(report: Dict[str, Any]) -> bytes:
    root = ET.Element(
        "accountReport",
        {
            "accountId": str(report.get("account_id", "")),
            "generatedAt": str(report.get("generated_at", "")),
            "includeExtendedHistory": str(report.get("include_extended_history", False)).lower(),
        },
    )
    summary = ET.SubElement(root, "summary")
    for field, value in _flatten(report.get("summary", {})):
        metric = ET.SubElement(summary, "metric", {"name": field})
        metric.text = _cell(value)
    for section, record_type in _ITEM_SECTIONS:
        container = ET.SubElement(root, section)
        for item in report.get(section, []):
            element = ET.SubElement(container, record_type, {"id": str(item.get("id", ""))})
            for field, value in _flatten(item):
                if field == "id":
                    continue
                child = ET.SubElement(element, "field", {"name": field})
                child.text = _cell(value)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


_RENDERERS: Dict[OutputFormat, Tuple[Callable[[Dict[str, Any]], bytes], str, str]] = {
    OutputFormat.JSON: (render_json, "json", "application/json"),
    OutputFormat.CSV: (render_csv, "csv", "text/csv"),
    OutputFormat.XML: (render_xml, "xml", "application/xml"),
}

_MEDIA_TYPES = {ext: media for _, ext, media in _RENDERERS.values()}


def format_report(report: Dict[str, Any], output_format: Any) -> FormattedReport:
    """Render ``report``; anything unregistered falls back to JSON."""
    try:
        fmt = OutputFormat(output_format)
    except ValueError:
        fmt = None
    if fmt not in _RENDERERS:
        logger.warning("Unsupported output format %r, using %s", output_format, DEFAULT_FORMAT.value)
        fmt = DEFAULT_FORMAT
    render, extension, media_type = _RENDERERS[fmt]
    return FormattedReport(data=render(report), extension=extension, media_type=media_type)


def media_type_for(locator: str) -> str:
    extension = locator.rsplit(".", 1)[-1].lower() if "." in locator else ""
    return _MEDIA_TYPES.get(extension, "application/octet-stream")


def _flatten(values: Dict[str, Any], prefix: str = "") -> Iterator[Tuple[str, Any]]:
    for key, value in values.items():
        name = f"{prefix}{key}"
        if isinstance(value, dict):
            yield from _flatten(value, prefix=f"{name}.")
        else:
            yield name, value


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (list, tuple)):
        return json.dumps(value, default=str)
    return str(value)
