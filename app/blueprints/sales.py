"""Sales blueprint: invoice creation, payment, deletion and receipts."""
from flask import Blueprint, request, jsonify, send_file, current_app

from app.database import get_session
from app.exceptions import ValidationError, NotificationError
from app.services import sales_service
from app.services.invoice_pdf_service import generate_invoice_pdf
from app.services.payment_service import update_sale_payment
from app.services.sale_delete_service import delete_sale_with_restore
from app.services.whatsapp_service import get_notifier
from app.stores import get_store
from app.utils.payload import is_missing

sales_bp = Blueprint('sales', __name__, url_prefix='/api/sales')


@sales_bp.route('', methods=['GET'])
def list_sales():
    return jsonify({'sales': sales_service.list_sales(get_session())})


@sales_bp.route('/status/<status>', methods=['GET'])
def list_sales_by_status(status):
    return jsonify({'sales': sales_service.list_sales(get_session(), status=status)})


@sales_bp.route('/<int:sale_id>', methods=['GET'])
def get_sale(sale_id):
    sale = sales_service.get_sale(get_session(), sale_id)
    return jsonify({'sale': sale.to_dict(include_items=True)})


@sales_bp.route('/invoice/<invoice>', methods=['GET'])
def get_sale_by_invoice(invoice):
    sale = sales_service.get_sale_by_invoice(get_session(), invoice)
    return jsonify({'sale': sale.to_dict(include_items=True)})


@sales_bp.route('', methods=['POST'])
def create_sale():
    """
    Create a sale from a cart.

    Body: {items: [{item_id, quantity}], customer_name?, customer_phone?,
           tax_rate?, discount_amount?, paid_amount?, date?, notes?}
    """
    result = sales_service.create_sale(
        request.get_json(silent=True),
        get_store(),
        notifier=get_notifier()
    )
    return jsonify({
        'message': 'Sale created successfully',
        'sale': result['sale'],
        'notification': result['notification'],
    }), 201


@sales_bp.route('/<int:sale_id>/payment', methods=['PATCH'])
def update_payment(sale_id):
    data = request.get_json(silent=True) or {}
    if is_missing(data.get('paid_amount')):
        raise ValidationError('Valid paid_amount is required')
    return jsonify(update_sale_payment(sale_id, data.get('paid_amount'), get_store()))


@sales_bp.route('/<int:sale_id>', methods=['DELETE'])
def delete_sale(sale_id):
    return jsonify(delete_sale_with_restore(sale_id, get_store()))


@sales_bp.route('/<int:sale_id>/send-whatsapp', methods=['POST'])
def send_whatsapp(sale_id):
    """Send (or build a link for) the receipt of an existing sale."""
    data = request.get_json(silent=True) or {}
    phone_number = data.get('phone_number')
    if is_missing(phone_number):
        raise ValidationError('Phone number is required')

    method = data.get('method') or None
    if method not in (None, 'simple', 'api'):
        raise ValidationError('method must be simple or api')

    sale = sales_service.get_sale(get_session(), sale_id)
    result = sales_service.send_receipt(get_notifier(), phone_number, sale.to_dict(include_items=True), method)
    if not result.get('success'):
        raise NotificationError('Failed to send WhatsApp invoice', {'details': result.get('error')})

    return jsonify({'message': 'WhatsApp invoice sent successfully', 'whatsapp': result})


@sales_bp.route('/<int:sale_id>/pdf', methods=['GET'])
def download_pdf(sale_id):
    session = get_session()
    sale = sales_service.get_sale(session, sale_id)
    pdf = generate_invoice_pdf(sale_id, session, current_app.config.get('CURRENCY_SYMBOL', 'RS'))
    return send_file(
        pdf,
        mimetype='application/pdf',
        as_attachment=True,
        download_name=f'invoice_{sale.invoice}.pdf'
    )
