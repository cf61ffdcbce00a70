# contractor_hub/services/documents.py
from io import BytesIO
from xml.sax.saxutils import escape
from flask import make_response
from reportlab.lib.pagesizes import letter
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.lib import colors
import logging

from .date_utils import format_long_date

logger = logging.getLogger(__name__)

_TABLE_STYLE = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.lightgrey),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.black),
    ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
    ('BACKGROUND', (0, -1), (-1, -1), colors.lightgrey),
    ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
    ('GRID', (0, 0), (-1, -1), 1, colors.black)
])


def build_quote_pdf(quote, company_name='Contractor Hub'):
    """Render a quote with its contact and line items as PDF bytes"""
    contact = quote.contact
    items = quote.items.all()

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        rightMargin=72,
        leftMargin=72,
        topMargin=72,
        bottomMargin=72,
        title=f"Quote #{quote.id}",
        author=company_name
    )

    styles = getSampleStyleSheet()
    title_style = styles['Heading1']
    heading2_style = styles['Heading2']
    normal_style = styles['Normal']

    elements = [
        Paragraph(escape(company_name), title_style),
        Paragraph(f"Quote #{quote.id}", heading2_style),
        Paragraph(f"Date: {format_long_date(quote.created_at) or 'N/A'}", normal_style),
        Paragraph(f"Valid Until: {format_long_date(quote.valid_until) or 'N/A'}", normal_style),
        Spacer(1, 0.25 * inch),
    ]

    if contact:
        elements.append(Paragraph("Billed To", heading2_style))
        elements.append(Paragraph(escape(contact.display_name), normal_style))
        if contact.company_name:
            elements.append(Paragraph(escape(contact.company_name), normal_style))
        elements.append(Paragraph(f"Email: {escape(contact.email or 'N/A')}", normal_style))
        elements.append(Paragraph(f"Phone: {escape(contact.phone or 'N/A')}", normal_style))
        elements.append(Spacer(1, 0.25 * inch))

    table_data = [["Description", "Room", "Sq Ft", "Quantity", "Unit Price", "Total"]]
    for item in items:
        table_data.append([
            item.description,
            item.room_name or '',
            f"{item.sqft:,.1f}" if item.sqft else '',
            str(item.quantity),
            f"${item.unit_price:,.2f}",
            f"${item.line_total:,.2f}"
        ])
    table_data.append(["", "", "", "", "Total:", f"${quote.total:,.2f}"])

    item_table = Table(table_data)
    item_table.setStyle(_TABLE_STYLE)
    elements.append(item_table)
    elements.append(Spacer(1, 0.25 * inch))

    if quote.signature:
        elements.append(Paragraph(
            f"Approved by {escape(quote.signature)} on {format_long_date(quote.approved_at) or 'N/A'}", normal_style
        ))

    doc.build(elements)
    buffer.seek(0)
    return buffer.getvalue()


def quote_pdf_response(quote, company_name='Contractor Hub'):
    """Inline PDF response for a quote"""
    try:
        response = make_response(build_quote_pdf(quote, company_name))
    except Exception as e:
        logger.error(f"Error generating PDF for quote {quote.id}: {str(e)}")
        raise
    response.headers['Content-Type'] = 'application/pdf'
    response.headers['Content-Disposition'] = f'inline; filename=quote_{quote.id}.pdf'
    return response
