"""
Quarter helper endpoints for the admin panel quarter picker.
"""
from flask import Blueprint, jsonify
from ..middleware import require_admin
from ..utils.quarters import (
    get_current_quarter,
    get_next_quarter,
    get_previous_quarter,
    get_year_quarters,
)

quarters_bp = Blueprint('quarters', __name__)


@quarters_bp.route('/current', methods=['GET'])
@require_admin
def current_quarter():
    current = get_current_quarter()
    return jsonify({
        'current': current.to_dict(),
        'previous': get_previous_quarter(current.quarter, current.year).to_dict(),
        'next': get_next_quarter(current.quarter, current.year).to_dict(),
    })


@quarters_bp.route('/<int:year>', methods=['GET'])
@require_admin
def year_quarters(year):
    return jsonify([info.to_dict() for info in get_year_quarters(year)])
