"""
PDF rendering for rights issue forms.

Two documents are produced with reportlab's platypus layout engine:

* the pre-filled paper form a shareholder downloads, prints, signs and
  lodges with a stockbroker or the registrar, and
* the completed rights allotment form generated from the online
  application wizard, which is stored with each submission and
  offered to the shareholder for viewing or download.
"""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ..offer import RightsOffer, declaration

BRAND_BLUE = colors.HexColor('#0A4269')
BRAND_ORANGE = colors.HexColor('#F58220')

DISCLAIMERS = [
    "(i) Shareholders who wish to trade in their rights, partially or in full may trade such rights "
    "on the floor of NGX. The rights will be traded actively on the floor of NGX.",
    "(ii) Shareholders who wish to acquire additional shares over and above their provisional "
    "allotment should apply for additional shares by completing items (v) and (vi) of box A above.",
    "(iii) Shareholders who purchase rights on the floor of NGX are guaranteed the number of shares "
    "purchased; they will not be subject to the allotment process with respect to shares so purchased. "
    "Those that apply for additional shares by completing items (vi) of box A will be subject to the "
    "allotment process i.e. they may be allotted a smaller number of additional shares than what they "
    "applied for.",
]


def _naira(value: Any) -> str:
    try:
        return f"N{float(value or 0):,.2f}"
    except (TypeError, ValueError):
        return str(value)


def _units(value: Any) -> str:
    try:
        return f"{int(float(value or 0)):,}"
    except (TypeError, ValueError):
        return str(value)


def _yes_no(value: Any) -> str:
    return 'Yes' if value else 'No'


def _styles() -> Dict[str, ParagraphStyle]:
    styles = getSampleStyleSheet()
    return {
        'title': ParagraphStyle(
            'FormTitle',
            parent=styles['Heading1'],
            fontSize=18,
            textColor=BRAND_BLUE,
            spaceAfter=6,
        ),
        'subtitle': ParagraphStyle(
            'FormSubtitle',
            parent=styles['Heading3'],
            textColor=BRAND_ORANGE,
            spaceAfter=12,
        ),
        'heading': ParagraphStyle(
            'FormHeading',
            parent=styles['Heading2'],
            fontSize=12,
            textColor=BRAND_BLUE,
            spaceBefore=12,
            spaceAfter=6,
        ),
        'normal': styles['Normal'],
        'small': ParagraphStyle('FormSmall', parent=styles['Normal'], fontSize=8, leading=10),
    }


def _field_table(rows: List[List[str]]) -> Table:
    table = Table(rows, colWidths=[2.4 * inch, 4.2 * inch])
    table.setStyle(TableStyle([
        ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, -1), 9),
        ('TEXTCOLOR', (0, 0), (0, -1), BRAND_BLUE),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.HexColor('#CBD5E1')),
        ('ROWBACKGROUNDS', (0, 0), (-1, -1), [colors.white, colors.HexColor('#F8FAFC')]),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
    ]))
    return table


def _build(elements: List[Any], title: str) -> bytes:
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title=title,
    )
    doc.build(elements)
    pdf_bytes = buffer.getvalue()
    buffer.close()
    return pdf_bytes


def render_prefilled_form(shareholder: Dict[str, Any], offer: RightsOffer) -> bytes:
    """Render the paper acceptance form pre-filled with register details."""
    styles = _styles()
    elements: List[Any] = [
        Paragraph(f"{offer.company.upper()} RIGHTS ISSUE", styles['title']),
        Paragraph("Acceptance / Renunciation Form", styles['subtitle']),
        Paragraph(declaration(offer), styles['normal']),
        Spacer(1, 0.2 * inch),
        Paragraph("Shareholder Information", styles['heading']),
        _field_table([
            ['Reg Account Number', str(shareholder.get('reg_account_number', ''))],
            ['Name', str(shareholder.get('name', ''))],
            ['Holdings', _units(shareholder.get('holdings'))],
            ['Rights Issue (Provisional Allotment)', _units(shareholder.get('rights_issue'))],
            ['Amount Payable', _naira(shareholder.get('amount_due'))],
        ]),
        Paragraph("A. Acceptance", styles['heading']),
        _field_table([
            ['Accept in full', '[   ]'],
            ['Additional shares applied for', ''],
            ['Additional amount payable', ''],
            ['Bank / Cheque number / Branch', ''],
        ]),
        Paragraph("B. Partial Acceptance / Renunciation", styles['heading']),
        _field_table([
            ['Shares accepted', ''],
            ['Amount payable', ''],
            ['Shares renounced', ''],
        ]),
        Paragraph("Contact and E-Dividend Mandate", styles['heading']),
        _field_table([
            ['Contact name', ''],
            ['Mobile phone / Email', ''],
            ['Bank / Account number / BVN', ''],
            ['CHN / Stockbroker', str(shareholder.get('chn') or '')],
            ['Signature(s)', ''],
        ]),
        Spacer(1, 0.2 * inch),
    ]
    elements.extend(Paragraph(text, styles['small']) for text in DISCLAIMERS)
    return _build(elements, f"Rights form {shareholder.get('reg_account_number', '')}")


def render_rights_form(
    form: Dict[str, Any],
    offer: RightsOffer,
    stockbroker_name: Optional[str] = None,
) -> bytes:
    """Render the completed rights allotment form for an online application.

    ``form`` carries the wizard fields or a stored submission; attachment
    presence is read from ``signature_paths`` / ``receipt_path`` or, for
    wizard previews, ``signatures`` / ``receipt``.
    """
    styles = _styles()
    full = form.get('action_type') == 'full_acceptance'
    signatures = form.get('signature_paths') or form.get('signatures') or []
    signature_count = len([s for s in signatures if s])
    has_receipt = bool(form.get('receipt_path') or form.get('receipt'))
    elements: List[Any] = [
        Paragraph(f"{offer.company.upper()} RIGHTS ISSUE", styles['title']),
        Paragraph("Rights Allotment Application", styles['subtitle']),
        Paragraph(declaration(offer), styles['normal']),
        Paragraph("Shareholder Information", styles['heading']),
        _field_table([
            ['Reg Account Number', str(form.get('reg_account_number', ''))],
            ['Name', str(form.get('name', ''))],
            ['Holdings', _units(form.get('holdings'))],
            ['Rights Issue', _units(form.get('rights_issue'))],
            ['Holdings After', _units(form.get('holdings_after'))],
        ]),
        Paragraph("Stockbroker &amp; CHN Details", styles['heading']),
        _field_table([
            ['Stockbroker', stockbroker_name or str(form.get('stockbroker') or '')],
            ['CHN', str(form.get('chn') or '')],
        ]),
        Paragraph("Action Details", styles['heading']),
    ]
    if full:
        elements.append(_field_table([
            ['Action', 'Full Acceptance'],
            ['Accept in full', _yes_no(form.get('accept_full'))],
            ['Amount due', _naira(form.get('amount_due'))],
            ['Additional shares', _units(form.get('additional_shares')) if form.get('apply_additional') else 'None'],
            ['Additional amount', _naira(form.get('additional_amount')) if form.get('apply_additional') else 'N/A'],
            ['Accept smaller allotment', _yes_no(form.get('accept_smaller_allotment'))],
            ['Total payable', _naira(form.get('amount_payable') or form.get('payment_amount'))],
            ['Bank / Cheque / Branch', ' / '.join(str(form.get(k) or '-') for k in ('bank_name', 'cheque_number', 'branch'))],
        ]))
    else:
        elements.append(_field_table([
            ['Action', 'Partial Acceptance / Renunciation'],
            ['Shares accepted', _units(form.get('shares_accepted'))],
            ['Amount payable', _naira(form.get('amount_payable'))],
            ['Shares renounced', _units(form.get('shares_renounced'))],
            ['Confirm partial allotment', _yes_no(form.get('accept_partial'))],
            ['Authorise rights trading', _yes_no(form.get('renounce_rights'))],
        ]))
    elements.extend([
        Paragraph("Personal &amp; Bank Information", styles['heading']),
        _field_table([
            ['Contact name', str(form.get('contact_name') or '')],
            ['Next of kin', str(form.get('next_of_kin') or '')],
            ['Mobile phone', str(form.get('mobile_phone') or '')],
            ['Daytime phone', str(form.get('daytime_phone') or '')],
            ['Email', str(form.get('email') or '')],
            ['E-dividend bank', str(form.get('bank_name_edividend') or '')],
            ['Bank branch', str(form.get('bank_branch_edividend') or '')],
            ['Account number', str(form.get('account_number') or '')],
            ['BVN', str(form.get('bvn') or '')],
        ]),
        Paragraph("Signature &amp; Receipt", styles['heading']),
        _field_table([
            ['Signature type', str(form.get('signature_type') or 'single').title()],
            ['Signatures attached', str(signature_count)],
            ['Payment receipt attached', _yes_no(has_receipt)],
            ['Corporate signatories', str(form.get('corporate_signatory_names') or '')],
            ['Designations', str(form.get('corporate_designations') or '')],
        ]),
        Spacer(1, 0.2 * inch),
    ])
    elements.extend(Paragraph(text, styles['small']) for text in DISCLAIMERS)
    elements.append(Spacer(1, 0.1 * inch))
    elements.append(Paragraph(f"Generated {datetime.now().strftime('%d %B %Y %H:%M')}", styles['small']))
    return _build(elements, f"Rights allotment {form.get('reg_account_number', '')}")
