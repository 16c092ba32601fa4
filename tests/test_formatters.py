import csv
import io
import json
import xml.etree.ElementTree as ET

from account_reports.jobs.models import OutputFormat
from account_reports.reports.formatters import format_report, media_type_for

REPORT = {
    "account_id": "acct-1",
    "generated_at": "2026-03-01T12:00:00+00:00",
    "include_extended_history": False,
    "summary": {"contact_count": 1, "win_rate": None, "cases_by_priority": {"high": 2}},
    "contacts": [{"id": "c1", "full_name": "Ada, Contact"}],
    "opportunities": [],
    "cases": [{"id": "k1", "priority": "high"}],
}


def test_json_output():
    formatted = format_report(REPORT, OutputFormat.JSON)
    assert formatted.extension == "json"
    assert formatted.media_type == "application/json"
    assert json.loads(formatted.data) == REPORT


def test_csv_output_is_long_form():
    formatted = format_report(REPORT, "csv")
    rows = list(csv.reader(io.StringIO(formatted.data.decode("utf-8"))))

    assert rows[0] == ["record_type", "record_id", "field", "value"]
    assert ["summary", "", "cases_by_priority.high", "2"] in rows
    assert ["summary", "", "win_rate", ""] in rows
    assert ["contact", "c1", "full_name", "Ada, Contact"] in rows
    assert ["case", "k1", "priority", "high"] in rows
    assert formatted.media_type == "text/csv"


def test_xml_output():
    formatted = format_report(REPORT, OutputFormat.XML)
    root = ET.fromstring(formatted.data)

    assert root.tag == "accountReport"
    assert root.get("accountId") == "acct-1"
    metrics = {m.get("name"): m.text for m in root.find("summary")}
    assert metrics["contact_count"] == "1"
    contact = root.find("contacts/contact")
    assert contact.get("id") == "c1"
    assert contact.find("field").text == "Ada, Contact"


def test_unregistered_format_falls_back_to_json():
    formatted = format_report(REPORT, "pdf")
    assert formatted.extension == "json"
    assert json.loads(formatted.data)["account_id"] == "acct-1"


def test_media_type_lookup():
    assert media_type_for("job/report.csv") == "text/csv"
    assert media_type_for("job/report.xml") == "application/xml"
    assert media_type_for("job/report") == "application/octet-stream"
