from flask import Flask, jsonify, request
from flask_socketio import SocketIO

from httpids.log import get_logger
from httpids.main import parse_exchange
from httpids.matcher.detector import SignatureDetector

log = get_logger("dashboard")

# Initialize SocketIO
socketio = SocketIO(cors_allowed_origins="*", async_mode="threading")

# Store app reference globally so emit_alert can access it
_app = None


def rule_to_dict(rule):
    return {
        "sid": rule.sid,
        "action": rule.action.value,
        "protocol": rule.protocol.value,
        "src_ip": rule.src_ip,
        "src_port": rule.src_port,
        "dst_ip": rule.dst_ip,
        "dst_port": rule.dst_port,
        "content": rule.content,
        "nocase": rule.nocase,
        "msg": rule.msg,
    }


def create_app(rules):
    global _app
    app = Flask(__name__)
    app.config['SECRET_KEY'] = 'httpids-dashboard-secret'
    # the detector snapshots the rules; requests only read it
    app.extensions['httpids.detector'] = SignatureDetector(rules)
    socketio.init_app(app)
    _app = app

    @app.route("/api/rules")
    def list_rules():
        detector = app.extensions['httpids.detector']
        return jsonify([rule_to_dict(r) for r in detector.rules])

    @app.route("/api/match", methods=["POST"])
    def match_message():
        """
        API Endpoint: evaluate one decoded message.
        Body: {"src_ip", "src_port", "dst_ip", "dst_port", "message": {...}}
        Every resulting event is also pushed to connected clients.
        """
        payload = request.get_json(silent=True)
        try:
            message, (src_ip, src_port, dst_ip, dst_port) = parse_exchange(payload)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400

        detector = app.extensions['httpids.detector']
        events = [e.to_dict() for e in detector.match(message, src_ip, src_port, dst_ip, dst_port)]
        for event in events:
            emit_alert(event)
        return jsonify({"events": events})

    @app.route("/test")
    def test():
        return {"status": "ok", "message": "Server is running"}

    return app


def emit_alert(alert):
    """
    Emit a detection event to all connected clients.
    Can be called from outside a request, so it pushes an app context.
    """
    if _app is None:
        log.error("emit_alert_without_app")
        return

    with _app.app_context():
        socketio.emit('new_alert', alert, namespace='/')
