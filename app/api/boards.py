"""
Board Routes Blueprint

Handles boards and their ordered columns:
- /api/boards: List/create boards
- /api/boards/<board_id>: Get/update/delete a board
- /api/boards/<board_id>/columns: List/add columns
- /api/boards/<board_id>/columns/reorder: Apply a full column order
- /api/boards/<board_id>/columns/<column_id>: Rename/delete a column
- /api/boards/<board_id>/columns/<column_id>/move: Move one column

Errors are raised as KanbanError subclasses and rendered by the
app-wide handlers registered in security.py.
"""

from flask import Blueprint, request, jsonify, current_app
import logging

from app.utils import get_json_payload, transact
from services.board_repository import BoardRepository
from validators import (
    validate_board_request,
    validate_column_request,
    validate_move_request,
    validate_reorder_request,
    require_valid,
    format_success_response,
)

logger = logging.getLogger(__name__)

# Create blueprint
boards_bp = Blueprint('boards_bp', __name__)


def _repository(session):
    return BoardRepository(session, current_app.config.get('DEFAULT_BOARD_COLUMNS'))


# ============================================================================
# BOARD ROUTES
# ============================================================================

@boards_bp.route('/api/boards', methods=['GET', 'POST'])
def handle_boards():
    """List all boards or create a new one"""
    if request.method == 'GET':
        boards = transact(lambda session: _repository(session).list_boards())
        return jsonify({'success': True, 'boards': boards})

    data = get_json_payload()
    require_valid(validate_board_request(data))
    board = transact(lambda session: _repository(session).create_board(data))
    return jsonify({'success': True, 'board': board}), 201


@boards_bp.route('/api/boards/<board_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_board(board_id):
    """Get, update or delete a specific board"""
    if request.method == 'GET':
        board = transact(lambda session: _repository(session).get_board(board_id))
        return jsonify({'success': True, 'board': board})

    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_board_request(data, partial=True))
        board = transact(lambda session: _repository(session).update_board(board_id, data))
        return jsonify({'success': True, 'board': board})

    transact(lambda session: _repository(session).delete_board(board_id))
    return '', 204


# ============================================================================
# COLUMN ROUTES
# ============================================================================

@boards_bp.route('/api/boards/<board_id>/columns', methods=['GET', 'POST'])
def handle_columns(board_id):
    """List a board's columns or append a new column"""
    if request.method == 'GET':
        columns = transact(lambda session: _repository(session).list_columns(board_id))
        return jsonify({'success': True, 'columns': columns})

    data = get_json_payload()
    require_valid(validate_column_request(data))
    column = transact(lambda session: _repository(session).add_column(board_id, data))
    return jsonify({'success': True, 'column': column}), 201


@boards_bp.route('/api/boards/<board_id>/columns/reorder', methods=['PUT'])
def reorder_columns(board_id):
    """Apply a full new column order: {columns: [ids]}"""
    data = get_json_payload()
    require_valid(validate_reorder_request(data, 'columns'), field='columns')

    columns = transact(
        lambda session: _repository(session).reorder_columns(board_id, data['columns'])
    )
    logger.info(f"Reordered {len(columns)} columns on board {board_id}")
    return jsonify(format_success_response(columns, "Columns reordered"))


@boards_bp.route('/api/boards/<board_id>/columns/<column_id>', methods=['PUT', 'DELETE'])
def handle_column(board_id, column_id):
    """Rename or delete a column"""
    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_column_request(data))
        column = transact(
            lambda session: _repository(session).update_column(board_id, column_id, data)
        )
        return jsonify({'success': True, 'column': column})

    transact(lambda session: _repository(session).delete_column(board_id, column_id))
    return '', 204


@boards_bp.route('/api/boards/<board_id>/columns/<column_id>/move', methods=['PUT'])
def move_column(board_id, column_id):
    """Move one column to a new position: {order}"""
    data = get_json_payload()
    require_valid(validate_move_request(data, require_parent=False), field='order')

    columns = transact(
        lambda session: _repository(session).move_column(board_id, column_id, data['order'])
    )
    return jsonify(format_success_response(columns, "Column moved"))
