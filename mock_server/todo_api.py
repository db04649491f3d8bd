from __future__ import annotations

import os
from threading import Lock
from typing import Any, Dict

from flask import Flask, Response, jsonify, redirect, request


def create_app() -> Flask:
    app = Flask(__name__)
    lock = Lock()
    state: Dict[str, Any] = {"todos": {}, "next_id": 123}

    @app.get("/health")
    def health() -> Any:
        return jsonify({"status": "ok"}), 200

    @app.post("/todos")
    def create_todo() -> Any:
        body = request.get_json(silent=True)
        if body is None:
            body = request.form.to_dict()
        title = body.get("todo_title")
        if not isinstance(title, str) or not title:
            return jsonify({"error": "`todo_title` must be a non-empty string"}), 400

        with lock:
            todo_id = state["next_id"]
            state["next_id"] += 1
            todo = {
                "id": todo_id,
                "todo_title": title,
                "todo_description": body.get("todo_description", ""),
                "done": False,
            }
            state["todos"][todo_id] = todo
        return jsonify(todo), 201

    @app.get("/todos")
    def list_todos() -> Any:
        with lock:
            todos = list(state["todos"].values())
        return jsonify({"count": len(todos), "todos": todos}), 200

    @app.get("/todos/<int:todo_id>")
    def get_todo(todo_id: int) -> Any:
        with lock:
            todo = state["todos"].get(todo_id)
        if todo is None:
            return jsonify({"error": f"Todo {todo_id} not found"}), 404
        return jsonify(todo), 200

    @app.post("/echo")
    def echo() -> Any:
        return jsonify(
            {
                "json": request.get_json(silent=True),
                "form": request.form.to_dict(),
                "content_type": request.content_type,
                "headers": {name: value for name, value in request.headers.items()},
            }
        ), 200

    @app.get("/plain")
    def plain() -> Any:
        return Response("everything is fine", status=200, mimetype="text/plain")

    @app.get("/broken-json")
    def broken_json() -> Any:
        return Response("{not json", status=200, mimetype="application/json")

    @app.get("/moved")
    def moved() -> Any:
        return redirect("/health", code=302)

    return app


app = create_app()


if __name__ == "__main__":
    host = os.getenv("TODO_API_HOST", "127.0.0.1")
    port = int(os.getenv("TODO_API_PORT", "5000"))
    app.run(host=host, port=port, debug=False)
