"""
Task Routes Blueprint

Handles tasks and their order within columns:
- /api/tasks: List (optionally ?column_id=) / create tasks
- /api/tasks/<task_id>: Get/update/delete a task
- /api/tasks/<task_id>/move: Move a task within or across columns
- /api/reorder: Apply a full task order for one column
- /api/calendar: Tasks with a due date
- /api/tasks/<task_id>/comments: List / add comments on a task
- /api/tasks/<task_id>/comments/<comment_id>: Update/delete a comment
"""

from flask import Blueprint, request, jsonify
import logging

from app.utils import get_json_payload, transact
from services.comment_repository import CommentRepository
from services.task_repository import TaskRepository
from validators import (
    validate_task_request,
    validate_move_request,
    validate_reorder_request,
    validate_comment_request,
    require_valid,
    format_success_response,
)

logger = logging.getLogger(__name__)

# Create blueprint
tasks_bp = Blueprint('tasks_bp', __name__)


# ============================================================================
# TASK ROUTES
# ============================================================================

@tasks_bp.route('/api/tasks', methods=['GET', 'POST'])
def handle_tasks():
    """Get all tasks or create new task"""
    if request.method == 'GET':
        column_id = request.args.get('column_id')
        tasks = transact(lambda session: TaskRepository(session).list_tasks(column_id))
        return jsonify({'success': True, 'tasks': tasks})

    data = get_json_payload()
    require_valid(validate_task_request(data))
    task = transact(lambda session: TaskRepository(session).create_task(data))
    return jsonify({'success': True, 'task': task}), 201


@tasks_bp.route('/api/tasks/<task_id>', methods=['GET', 'PUT', 'DELETE'])
def handle_task(task_id):
    """Get, update or delete a specific task"""
    if request.method == 'GET':
        task = transact(lambda session: TaskRepository(session).get_task(task_id))
        return jsonify({'success': True, 'task': task})

    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_task_request(data, partial=True))
        task = transact(lambda session: TaskRepository(session).update_task(task_id, data))
        return jsonify({'success': True, 'task': task})

    transact(lambda session: TaskRepository(session).delete_task(task_id))
    return '', 204


@tasks_bp.route('/api/tasks/<task_id>/move', methods=['PUT'])
def move_task(task_id):
    """Move a task: {column_id, order}"""
    data = get_json_payload()
    require_valid(validate_move_request(data))

    task = transact(
        lambda session: TaskRepository(session).move_task(task_id, data['column_id'], data['order'])
    )
    logger.info(f"Moved task {task_id} to column {task['column_id']} at {task['order']}")
    return jsonify({'success': True, 'task': task})


@tasks_bp.route('/api/reorder', methods=['PUT'])
def reorder_tasks():
    """Apply a full new order for one column: {column_id, tasks: [ids]}"""
    data = get_json_payload()
    require_valid(validate_reorder_request(data, 'tasks', parent_field='column_id'), field='tasks')

    task_ids = transact(
        lambda session: TaskRepository(session).reorder_tasks(data['column_id'], data['tasks'])
    )
    return jsonify(format_success_response(task_ids, "Tasks reordered"))


@tasks_bp.route('/api/calendar', methods=['GET'])
def calendar():
    """Tasks with a due date, soonest first"""
    tasks = transact(lambda session: TaskRepository(session).calendar_tasks())
    return jsonify({'success': True, 'tasks': tasks})


# ============================================================================
# COMMENT ROUTES
# ============================================================================

@tasks_bp.route('/api/tasks/<task_id>/comments', methods=['GET', 'POST'])
def handle_comments(task_id):
    """List a task's comments (newest first) or add one: {content, user_id?}"""
    if request.method == 'GET':
        comments = transact(lambda session: CommentRepository(session, task_id).list_comments())
        return jsonify({'success': True, 'comments': comments})

    data = get_json_payload()
    require_valid(validate_comment_request(data))
    comment = transact(lambda session: CommentRepository(session, task_id).add_comment(data))
    return jsonify({'success': True, 'comment': comment}), 201


@tasks_bp.route('/api/tasks/<task_id>/comments/<comment_id>', methods=['PUT', 'DELETE'])
def handle_comment(task_id, comment_id):
    """Update or delete a comment of a task"""
    if request.method == 'PUT':
        data = get_json_payload()
        require_valid(validate_comment_request(data))
        comment = transact(
            lambda session: CommentRepository(session, task_id).update_comment(comment_id, data)
        )
        return jsonify({'success': True, 'comment': comment})

    transact(lambda session: CommentRepository(session, task_id).delete_comment(comment_id))
    return '', 204
