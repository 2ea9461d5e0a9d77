import os

from app import create_app, socketio

app = create_app()

if __name__ == '__main__':
    # Socket.IO dev server; bind 0.0.0.0 to reach it from phones on the venue network
    socketio.run(
        app,
        host=os.environ.get('HOST', '127.0.0.1'),
        port=int(os.environ.get('PORT', '5000')),
        debug=os.environ.get('FLASK_DEBUG', '1') == '1',
    )
