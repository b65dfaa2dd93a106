"""Scoreboard PDF export using ReportLab."""

import logging
from pathlib import Path
from typing import Optional, Sequence
from datetime import datetime

from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle
)
from reportlab.lib.enums import TA_CENTER

import config
from tracking.analytics import compute_statistics, format_duration, generate_summary_text
from tracking.ledger import ScoreRecord

logger = logging.getLogger(__name__)

# Rows beyond this are summarised in a single "... more" row
MAX_TABLE_ROWS = 25


def generate_scoreboard_report(
    records: Sequence[ScoreRecord],
    output_dir: Optional[Path] = None,
    generated_at: Optional[datetime] = None
) -> Path:
    """
    Generate a PDF of the scoreboard.

    Args:
        records: Ledger records in rank order
        output_dir: Output directory (defaults to config.REPORTS_DIR)
        generated_at: Report timestamp (defaults to now)

    Returns:
        Path to the generated PDF file
    """
    if output_dir is None:
        output_dir = config.REPORTS_DIR
    if generated_at is None:
        generated_at = datetime.now()

    output_dir.mkdir(parents=True, exist_ok=True)

    filename = f"scoreboard_{generated_at.strftime('%Y%m%d_%H%M%S')}.pdf"
    filepath = output_dir / filename

    doc = SimpleDocTemplate(
        str(filepath),
        pagesize=letter,
        rightMargin=72,
        leftMargin=72,
        topMargin=72,
        bottomMargin=72
    )

    story = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'CustomTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#92400E'),
        spaceAfter=30,
        alignment=TA_CENTER
    )

    heading_style = ParagraphStyle(
        'CustomHeading',
        parent=styles['Heading2'],
        fontSize=16,
        textColor=colors.HexColor('#B45309'),
        spaceAfter=12,
        spaceBefore=12
    )

    story.append(Paragraph("Focus Scoreboard", title_style))
    story.append(Paragraph(
        f"<b>Generated:</b> {generated_at.strftime('%B %d, %Y %I:%M %p')}",
        styles['Normal']
    ))
    story.append(Spacer(1, 0.3 * inch))

    # Summary section
    stats = compute_statistics(records)
    story.append(Paragraph("Summary", heading_style))
    for line in generate_summary_text(stats).splitlines():
        if line.strip():
            story.append(Paragraph(line, styles['Normal']))
    story.append(Spacer(1, 0.3 * inch))

    # Ranking section
    story.append(Paragraph("Rankings", heading_style))

    if records:
        table_data = [['Rank', 'Duration', 'Ended', 'Ended By']]
        for rank, record in enumerate(records[:MAX_TABLE_ROWS], 1):
            table_data.append([
                str(rank),
                format_duration(record.duration_seconds),
                record.ended_at.strftime("%b %d, %I:%M %p"),
                "Distraction" if record.stop_reason == config.STOP_AUTO else "You"
            ])

        if len(records) > MAX_TABLE_ROWS:
            table_data.append(['...', f'{len(records) - MAX_TABLE_ROWS} more sessions', '', ''])

        table = Table(table_data, colWidths=[0.8 * inch, 1.5 * inch, 2.2 * inch, 1.5 * inch])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#B45309')),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, 0), 12),
            ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
            ('BACKGROUND', (0, 1), (-1, -1), colors.HexColor('#FFFBEB')),
            ('GRID', (0, 0), (-1, -1), 1, colors.HexColor('#FCD34D')),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 1), (-1, -1), 11),
            ('TOPPADDING', (0, 1), (-1, -1), 8),
            ('BOTTOMPADDING', (0, 1), (-1, -1), 8),
        ]))
        story.append(table)
    else:
        story.append(Paragraph("No sessions recorded yet.", styles['Normal']))

    footer_style = ParagraphStyle(
        'Footer',
        parent=styles['Normal'],
        fontSize=9,
        textColor=colors.grey,
        alignment=TA_CENTER
    )
    story.append(Spacer(1, 0.5 * inch))
    story.append(Paragraph("Generated by Focus Session Tracker", footer_style))

    try:
        doc.build(story)
        logger.info(f"Scoreboard report generated: {filepath}")
        return filepath
    except Exception as e:
        logger.error(f"Error generating PDF: {e}")
        raise
