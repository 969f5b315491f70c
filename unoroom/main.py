from flask import Blueprint, jsonify
from unoroom import registry

main = Blueprint('main', __name__)


@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Uno game server!'})


@main.route('/health')
def health():
    return jsonify({'status': 'ok', 'matches': len(registry)})
