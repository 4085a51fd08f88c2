# Report Generation Utilities
import io
from datetime import datetime
from xml.sax.saxutils import escape

import pandas as pd
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import PageBreak, Paragraph, SimpleDocTemplate, Spacer

def generate_csv_report(data, columns=None):
    """Render a list of flat dicts as CSV text."""
    frame = pd.DataFrame(data, columns=columns)
    return frame.to_csv(index=False)

def generate_excel_report(data, columns=None, sheet_name='Report'):
    """Render a list of flat dicts as an XLSX workbook; returns bytes."""
    frame = pd.DataFrame(data, columns=columns)
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        frame.to_excel(writer, sheet_name=sheet_name, index=False)
    return buffer.getvalue()

def generate_pdf_report(records, title, generated_by, subtitle=None):
    """
    Render narrative records, one per page.

    Args:
        records: list of ``{'heading': str, 'sections': [(title, [(label, value), ...]), ...]}``
        title: document title on the first page
        generated_by: shown under the title
        subtitle: optional line under the title

    Returns:
        io.BytesIO positioned at the start of the PDF
    """
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, title=title,
                            leftMargin=2 * cm, rightMargin=2 * cm,
                            topMargin=2 * cm, bottomMargin=2 * cm)
    styles = getSampleStyleSheet()
    small = styles['BodyText'].clone('Small', fontSize=8, leading=10)

    story = [
        Paragraph(escape(title), styles['Title']),
        Paragraph(f"Generated on: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')} by {escape(generated_by)}",
                  styles['Normal']),
    ]
    if subtitle:
        story.append(Paragraph(escape(subtitle), styles['Italic']))
    story.append(Spacer(1, 0.8 * cm))

    if not records:
        story.append(Paragraph('No records to export.', styles['Normal']))

    for index, record in enumerate(records):
        if index > 0:
            story.append(PageBreak())
        story.append(Paragraph(escape(record['heading']), styles['Heading2']))
        for section_title, lines in record['sections']:
            story.append(Paragraph(f'<u>{escape(section_title)}</u>', styles['Heading4']))
            for label, value in lines:
                text = escape('' if value is None else str(value))
                # Signed URLs are long; print them small so they wrap
                style = small if text.startswith('http') else styles['BodyText']
                story.append(Paragraph(f'<b>{escape(label)}:</b> {text}', style))
            story.append(Spacer(1, 0.3 * cm))

    doc.build(story)
    buffer.seek(0)
    return buffer
