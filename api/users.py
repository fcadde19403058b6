from __future__ import annotations

from typing import Tuple

from flask import Blueprint, request, jsonify, g, abort

from models import storage
from models.refresh_token import RefreshToken
from models.user import Role, User
from models.schemas.user import RoleUpdateSchema, UserOutSchema
from utils.decorators import protect, restrict_to
from utils.exceptions import NotFound

MAX_LIMIT = 100

bp = Blueprint("users", __name__)

user_out_schema = UserOutSchema()
user_list_out_schema = UserOutSchema(many=True)
role_update_schema = RoleUpdateSchema()


def parse_pagination() -> Tuple[int, int]:
    try:
        page = int(request.args.get("page", "1"))
        limit = int(request.args.get("limit", "20"))
        page = max(page, 1)
        limit = max(1, min(limit, MAX_LIMIT))
        return page, limit
    except ValueError:
        abort(400, description="page and limit must be integers")


@bp.get("/users")
@restrict_to(Role.ADMIN)
def list_users():
    """
    List all live users - admin
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: query
        name: page
        type: integer
        default: 1
      - in: query
        name: limit
        type: integer
        default: 20
    responses:
      200: { description: OK }
      401: { description: Unauthorized }
      403: { description: Forbidden }
    """
    session = storage.get_session()
    page, limit = parse_pagination()

    query = session.query(User).filter(User.deleted_at.is_(None))
    total = query.count()
    rows = query.order_by(User.name.asc()).offset((page - 1) * limit).limit(limit).all()
    return jsonify(
        {
            "status": "success",
            "data": {"users": user_list_out_schema.dump(rows)},
            "meta": {"page": page, "limit": limit, "total": total}
        }
    ), 200


@bp.get("/users/me")
@protect()
def me():
    """
    Get current user info.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    return jsonify({"status": "success", "data": {"user": user_out_schema.dump(g.current_user)}}), 200


@bp.delete("/users/me")
@protect()
def delete_me():
    """
    Deactivate the current account (soft delete) and drop its refresh tokens.
    ---
    tags:
      - Users
    security:
      - Bearer: []
    responses:
      204: { description: Deleted }
      401: { description: Unauthorized }
    """
    user = g.current_user
    user.soft_delete()
    RefreshToken.revoke_all_for(user.id)
    return ("", 204)


@bp.patch("/users/<user_id>/role")
@restrict_to(Role.ADMIN)
def set_role(user_id: str):
    """
    Admin-only: set the role of a user.
    Body: { "role": "guide" }
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             role: { type: string, enum: [user, guide, lead-guide, admin] }
    responses:
      200: { description: OK }
      404: { description: No such user }
      400: { description: Unknown role }
    """
    data = role_update_schema.load(request.get_json(silent=True) or {})
    user = User.find_live(user_id)
    if user is None:
        raise NotFound("No user found with that ID")
    user.role = data["role"]
    user.save()
    return jsonify({"status": "success", "data": {"user": user_out_schema.dump(user)}}), 200
