"""
Entry point for `flask --app spinverse_be.wsgi ...` and WSGI servers.
"""
from spinverse_be.app import create_app

app, socketio = create_app()

if __name__ == '__main__':
    socketio.run(app, host='0.0.0.0', port=5000, debug=app.debug, allow_unsafe_werkzeug=app.debug)
