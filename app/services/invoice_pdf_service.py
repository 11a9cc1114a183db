"""PDF invoice rendering for sales."""

from io import BytesIO
from typing import Dict, Any
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER

from app.exceptions import NotFoundError
from app.models import Sale
from app.services.settings_service import get_settings
from app.utils.formatters import to_money, format_money, display_date


def _render_invoice_pdf(sale: Dict[str, Any], shop: Dict[str, Any], currency: str = 'RS') -> BytesIO:
    """
    Render a sale snapshot (Sale.to_dict(include_items=True)) as an A4 invoice.

    Args:
        sale: sale dict with 'items'
        shop: settings dict (camelCase keys, as returned by the settings service)
        currency: symbol printed in front of amounts
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=0.75*inch,
        leftMargin=0.75*inch,
        topMargin=0.75*inch,
        bottomMargin=0.75*inch,
        title=f"Invoice {sale.get('invoice')}"
    )

    elements = []
    styles = getSampleStyleSheet()

    title_style = ParagraphStyle(
        'InvoiceTitle',
        parent=styles['Heading1'],
        fontSize=24,
        textColor=colors.HexColor('#2C3E50'),
        spaceAfter=12,
        alignment=TA_CENTER,
        fontName='Helvetica-Bold'
    )

    header_style = ParagraphStyle(
        'InvoiceHeader',
        parent=styles['Normal'],
        fontSize=10,
        textColor=colors.HexColor('#7F8C8D'),
        alignment=TA_CENTER,
        spaceAfter=6
    )

    # 1. Title and shop header
    elements.append(Paragraph("INVOICE", title_style))

    if shop.get('shopName'):
        elements.append(Paragraph(f"<b>{escape(shop['shopName'])}</b>", header_style))

    address = ", ".join(
        part for part in (shop.get('shopAddress'), shop.get('shopCity'), shop.get('shopState'), shop.get('shopZipCode'))
        if part
    )
    if address:
        elements.append(Paragraph(escape(address), header_style))

    contact_parts = []
    if shop.get('shopPhone'):
        contact_parts.append(f"Phone: {shop['shopPhone']}")
    if shop.get('shopEmail'):
        contact_parts.append(f"Email: {shop['shopEmail']}")
    if shop.get('taxId'):
        contact_parts.append(f"Tax ID: {shop['taxId']}")
    if contact_parts:
        elements.append(Paragraph(escape(" | ".join(contact_parts)), header_style))

    elements.append(Spacer(1, 0.3*inch))

    # 2. Invoice metadata
    info_data = [
        ['Invoice #:', sale.get('invoice') or '-'],
        ['Date:', display_date(sale.get('date'))],
        ['Status:', str(sale.get('status', '')).upper()],
    ]
    if sale.get('customer_name'):
        info_data.append(['Customer:', sale['customer_name']])
    if sale.get('customer_phone'):
        info_data.append(['Phone:', sale['customer_phone']])

    info_table = Table(info_data, colWidths=[2*inch, 3*inch])
    info_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (0, -1), 'RIGHT'),
        ('ALIGN', (1, 0), (1, -1), 'LEFT'),
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('TEXTCOLOR', (0, 0), (-1, -1), colors.HexColor('#34495E')),
    ]))
    elements.append(info_table)
    elements.append(Spacer(1, 0.3*inch))

    # 3. Items
    table_data = [['Item', 'SKU', 'Qty', 'Unit Price', 'Total']]
    for item in sale.get('items') or []:
        table_data.append([
            item.get('item_name'),
            item.get('sku') or '-',
            str(item.get('quantity')),
            format_money(item.get('unit_price'), currency),
            format_money(item.get('line_total'), currency),
        ])

    items_table = Table(table_data, colWidths=[2.9*inch, 1*inch, 0.6*inch, 1.1*inch, 1.1*inch])
    items_table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#3498DB')),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('ALIGN', (2, 1), (2, -1), 'CENTER'),
        ('ALIGN', (3, 1), (4, -1), 'RIGHT'),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#BDC3C7')),
        ('ROWBACKGROUNDS', (0, 1), (-1, -1), [colors.white, colors.HexColor('#ECF0F1')]),
    ]))
    elements.append(items_table)
    elements.append(Spacer(1, 0.2*inch))

    # 4. Totals
    total = to_money(sale.get('total_amount'))
    paid = to_money(sale.get('paid_amount'))
    totals_data = [['Subtotal:', format_money(sale.get('subtotal'), currency)]]
    if to_money(sale.get('tax_amount')) > 0:
        totals_data.append(['Tax:', format_money(sale.get('tax_amount'), currency)])
    if to_money(sale.get('discount_amount')) > 0:
        totals_data.append(['Discount:', format_money(-to_money(sale.get('discount_amount')), currency)])
    totals_data.append(['TOTAL:', format_money(total, currency)])
    totals_data.append(['Paid:', format_money(paid, currency)])

    balance = total - paid
    if balance > 0:
        totals_data.append(['Balance Due:', format_money(balance, currency)])
    elif balance < 0:
        totals_data.append(['Change:', format_money(abs(balance), currency)])
    else:
        totals_data.append(['', 'Fully Paid'])

    total_row = next(i for i, row in enumerate(totals_data) if row[0] == 'TOTAL:')
    totals_table = Table(totals_data, colWidths=[5.6*inch, 1.1*inch])
    totals_table.setStyle(TableStyle([
        ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('FONTNAME', (0, total_row), (-1, total_row), 'Helvetica-Bold'),
        ('FONTSIZE', (0, total_row), (-1, total_row), 13),
        ('TEXTCOLOR', (0, total_row), (-1, total_row), colors.HexColor('#27AE60')),
        ('LINEABOVE', (0, total_row), (-1, total_row), 1, colors.HexColor('#27AE60')),
    ]))
    elements.append(totals_table)
    elements.append(Spacer(1, 0.4*inch))

    # 5. Footer
    footer_style = ParagraphStyle(
        'InvoiceFooter', parent=styles['Normal'], fontSize=9,
        textColor=colors.HexColor('#95A5A6'), alignment=TA_CENTER
    )
    footer_text = escape(shop.get('receiptFooter') or 'Thank you for your business!')
    if shop.get('warrantyTerms'):
        footer_text += f"<br/><br/><b>Warranty ({shop.get('warrantyPeriod', 0)} days):</b> {escape(shop['warrantyTerms'])}"
    if sale.get('notes'):
        footer_text += f"<br/><br/><b>Notes:</b> {escape(sale['notes']).replace(chr(10), '<br/>')}"
    elements.append(Paragraph(footer_text, footer_style))

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_invoice_pdf(sale_id: int, session, currency: str = 'RS') -> BytesIO:
    """Render the PDF of a stored sale using the current shop settings."""
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise NotFoundError('Sale not found', {'sale_id': sale_id})
    return _render_invoice_pdf(sale.to_dict(include_items=True), get_settings(session), currency)
