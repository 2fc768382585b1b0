"""
Resource block routes: staff close a resource for a day or some hours
(instructor off, maintenance) and reopen it.
"""

from flask import request
from flask_login import current_user

from models.resource_block import add_block, list_blocks, remove_block
from models.exceptions import ValidationError
from utils.api_response import api_success
from utils.decorators import capability_required
from utils.messages import MESSAGES
from utils.permissions import MANAGE, VIEW
from utils.validators import validate_date_format
from blueprints.api.serializers import serialize_block, json_body


def register_routes(bp):
    """Register resource block routes on the blueprint."""

    @bp.route('/blocks')
    @capability_required(VIEW)
    def block_list():
        """
        List closed days and hours.

        Query params:
            resource: resource code (optional)
            date_from: YYYY-MM-DD (optional)
            date_to: YYYY-MM-DD (optional)
        """
        for name in ('date_from', 'date_to'):
            value = request.args.get(name)
            if value and not validate_date_format(value):
                raise ValidationError(MESSAGES['invalid_date'], field=name)

        blocks = list_blocks(
            resource_code=request.args.get('resource') or None,
            date_from=request.args.get('date_from') or None,
            date_to=request.args.get('date_to') or None
        )
        return api_success(data=[serialize_block(b) for b in blocks])

    @bp.route('/blocks', methods=['POST'])
    @capability_required(MANAGE)
    def block_create():
        """
        Close a resource.

        Request JSON:
        {
            "resource": "QUADS",
            "date": "2026-10-20",
            "startTime": "14:00",   // omit to close the whole day
            "endTime": "16:00",     // omit to close until closing time
            "reason": "Инструктор на обслуживании техники"
        }
        """
        data, error = json_body(request)
        if error:
            return error

        block = add_block(
            data.get('resource'),
            data.get('date'),
            start_time=data.get('startTime'),
            end_time=data.get('endTime'),
            reason=data.get('reason') or '',
            created_by=current_user.username
        )
        return api_success(data=serialize_block(block), message=MESSAGES['block_created'],
                           status=201)

    @bp.route('/blocks/<int:block_id>', methods=['DELETE'])
    @capability_required(MANAGE)
    def block_delete(block_id):
        """Reopen a closed day or hour."""
        remove_block(block_id, current_user.username)
        return api_success(message=MESSAGES['block_removed'])
