import io
import re
from collections.abc import Collection, Sequence
from dataclasses import dataclass
from datetime import datetime, timedelta

from reportlab.lib import colors
from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from threatfeed.core.errors import EmptyReportError
from threatfeed.core.time import now_utc
from threatfeed.schemas.common import Severity, ThreatItem

MARGIN = 40
PAGE_BREAK_THRESHOLD = 100
LINE_SPACING = 1.25
BODY_FONT = "Helvetica"
TITLE_FONT = "Helvetica-Bold"


@dataclass(frozen=True)
class ReportSpec:
    slug: str
    title: str
    window: timedelta
    severities: frozenset[Severity] | None
    empty_message: str


WEEKLY_REPORT = ReportSpec(
    slug="weekly",
    title="Weekly Threat Intelligence Report",
    window=timedelta(days=7),
    severities=None,
    empty_message="No weekly threats found",
)

MONTHLY_REPORT = ReportSpec(
    slug="monthly",
    title="Monthly Critical & High Threats Report",
    window=timedelta(days=30),
    severities=frozenset({Severity.critical, Severity.high}),
    empty_message="No monthly threats found",
)


def select_report_items(
    items: Sequence[ThreatItem],
    window_start: datetime,
    severities: Collection[Severity] | None = None,
) -> list[ThreatItem]:
    """Items published at or after ``window_start``, newest first."""
    selected = [
        item
        for item in items
        if item.date_published >= window_start and (not severities or item.severity in severities)
    ]
    return sorted(selected, key=lambda item: item.date_published, reverse=True)


def report_filename(title: str) -> str:
    stem = re.sub(r"\s+", "_", title.strip()).lower()
    return f"{stem}.pdf"


def _pdf_safe(text: str) -> str:
    # Standard PDF fonts only cover cp1252.
    cleaned = "".join(ch if ch.isprintable() else " " for ch in text)
    return cleaned.encode("cp1252", "replace").decode("cp1252")


class _ReportCanvas:
    """Top-down text flow over a reportlab canvas with automatic page breaks."""

    def __init__(self, buffer: io.BytesIO, title: str):
        self.canvas = canvas.Canvas(buffer, pagesize=LETTER)
        self.canvas.setTitle(title)
        self.width, self.height = LETTER
        self.max_width = self.width - 2 * MARGIN
        self.y = self.height - MARGIN

    def new_page(self) -> None:
        self.canvas.showPage()
        self.y = self.height - MARGIN

    def ensure_room(self, needed: float) -> None:
        if self.y - needed < MARGIN:
            self.new_page()

    def move_down(self, size: float = 12) -> None:
        self.y -= size * LINE_SPACING

    def write(
        self,
        text: str,
        size: float = 12,
        color=colors.black,
        font: str = BODY_FONT,
        center: bool = False,
        link: str | None = None,
    ) -> None:
        leading = size * LINE_SPACING
        for line in simpleSplit(_pdf_safe(text), font, size, self.max_width) or [""]:
            self.ensure_room(leading)
            self.y -= leading
            self.canvas.setFont(font, size)
            self.canvas.setFillColor(color)
            if center:
                self.canvas.drawCentredString(self.width / 2, self.y, line)
                continue
            self.canvas.drawString(MARGIN, self.y, line)
            if link:
                line_width = self.canvas.stringWidth(line, font, size)
                self.canvas.setStrokeColor(color)
                self.canvas.line(MARGIN, self.y - 1.5, MARGIN + line_width, self.y - 1.5)
                self.canvas.linkURL(link, (MARGIN, self.y - 2, MARGIN + line_width, self.y + size), relative=0)

    def finish(self) -> None:
        self.canvas.save()


def render_report(items: Sequence[ThreatItem], title: str, generated_at: datetime | None = None) -> bytes:
    generated_at = generated_at or now_utc()
    buffer = io.BytesIO()
    pdf = _ReportCanvas(buffer, title)

    pdf.write(title, size=20, font=TITLE_FONT, center=True)
    pdf.move_down()
    pdf.write(f"Generated: {generated_at.strftime('%Y-%m-%d %H:%M:%S %Z').strip()}", size=12)
    pdf.move_down()

    for index, item in enumerate(items, start=1):
        pdf.write(f"{index}. {item.title}", size=14, font=TITLE_FONT)
        pdf.write(
            f"Source: {item.source} | Severity: {item.severity.value} | Date: {item.date_published.isoformat()}",
            size=11,
            color=colors.gray,
        )
        if item.url:
            pdf.write(f"Link: {item.url}", size=11, color=colors.blue, link=item.url)
        if item.ai_summary:
            pdf.write(f"AI Summary: {item.ai_summary}", size=12)
        pdf.write(f"Description: {item.description}", size=12)
        pdf.move_down()
        if pdf.y < PAGE_BREAK_THRESHOLD:
            pdf.new_page()

    pdf.finish()
    return buffer.getvalue()


def build_report(
    items: Sequence[ThreatItem],
    window_start: datetime,
    severities: Collection[Severity] | None,
    title: str,
    generated_at: datetime | None = None,
    empty_message: str | None = None,
) -> bytes:
    selected = select_report_items(items, window_start, severities)
    if not selected:
        raise EmptyReportError(empty_message or f"No threats found for {title}")
    return render_report(selected, title, generated_at)


def build_report_for(spec: ReportSpec, items: Sequence[ThreatItem], now: datetime | None = None) -> bytes:
    now = now or now_utc()
    return build_report(
        items,
        window_start=now - spec.window,
        severities=spec.severities,
        title=spec.title,
        generated_at=now,
        empty_message=spec.empty_message,
    )
