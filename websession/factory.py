"""Application factory for a test session app."""

from typing import Any

from flask import Flask, jsonify, make_response, request

from .extension import Sessions, current_sessions


def create_web_app(**config: Any) -> Flask:
    """
    Initialize and configure a small application that uses sessions.

    Keyword arguments are added to the application config before the
    extension is initialized.
    """
    app = Flask('test_session_app')
    app.config['WEBSESSION_KEY_PAIRS'] = [
        ('test-authentication-key-0123456789abcdef', None)
    ]
    app.config.update(config)
    Sessions(app)

    def _save(response: Any) -> None:
        if not app.config['WEBSESSION_SAVE_ON_RESPONSE']:
            current_sessions().save(response)

    @app.route('/visit')
    def visit() -> Any:
        session = current_sessions().get('visits')
        session.values['count'] = session.values.get('count', 0) + 1
        response = make_response(jsonify(count=session.values['count']))
        _save(response)
        return response

    @app.route('/flash', methods=['POST'])
    def flash() -> Any:
        session = current_sessions().get('messages')
        session.add_flash(request.form['message'])
        response = make_response('', 204)
        _save(response)
        return response

    @app.route('/flashes')
    def flashes() -> Any:
        session = current_sessions().get('messages')
        response = make_response(jsonify(messages=session.flashes()))
        _save(response)
        return response

    @app.route('/logout', methods=['POST'])
    def logout() -> Any:
        session = current_sessions().get('visits')
        session.options.max_age = -1
        response = make_response('', 204)
        _save(response)
        return response

    return app
