from __future__ import annotations

from flask import Flask, jsonify, request, session

from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/auth/login", methods=["POST"], endpoint="login")
    def login():
        data = request.get_json(silent=True) or {}
        username = data.get("username", "")
        password = data.get("password", "")
        remember = data.get("rememberMe")

        operator = container.auth_service.authenticate(username, password)

        session.clear()
        session.permanent = bool(remember)

        session["operator_id"] = operator.operator_id
        session["name"] = operator.name
        session["role"] = operator.role.value
        session["branch_id"] = operator.branch_id

        return jsonify({"success": True, "operator": operator.to_dict()})

    @app.route("/auth/logout", methods=["POST"], endpoint="logout")
    def logout():
        session.clear()
        return jsonify({"success": True})
