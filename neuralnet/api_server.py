"""
api_server.py
~~~~~~~~~~~~~

Flask-based REST API for creating, training and querying networks.

This module provides endpoints for:
- Creating three-layer networks
- Training them synchronously from compact training sets or training documents
- Running predictions
- Exporting and importing network documents
- Persisting networks to/from the SQLite store

Configuration comes from the environment:
- LOG_LEVEL: logging level (default INFO)
- FLASK_ENV: 'production' quiets third-party loggers and disables debug mode
- MODEL_DIR: directory of the SQLite store (default 'models')
- PORT: port to listen on (default 8000)
"""

import math
import os
import uuid
import logging
from typing import Any, Dict, List, Optional

from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask_cors import CORS

from .activation import ACTIVATIONS
from .exceptions import DocumentFormatError, InputShapeError
from .network import Network
from .network_document import from_xml, to_xml
from .training import document_from_sets
from .model_persistence import (
    save_network,
    load_network,
    list_saved_networks,
    delete_network,
    delete_old_networks,
    get_network_document,
)

# ============================================================================
# LOGGING SETUP
# ============================================================================


def configure_logging() -> None:
    """
    Set up logging based on environment.

    - In production: Show fewer logs (less noise) but keep important logs
    - In development: Show more detailed logs for debugging
    """
    log_level_str = os.getenv('LOG_LEVEL', 'INFO').upper()
    log_level = getattr(logging, log_level_str, logging.INFO)
    is_production = os.getenv('FLASK_ENV') == 'production'

    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if is_production:
        logging.getLogger('werkzeug').setLevel(logging.WARNING)
        logging.getLogger('neuralnet').setLevel(logging.INFO)


logger = logging.getLogger(__name__)

networks_bp = Blueprint('networks', __name__)

DEFAULT_LEARNING_RATE = 0.005
DEFAULT_EPOCHS = 1000


# ============================================================================
# APP STATE
# ============================================================================

def _active_networks() -> Dict[str, Dict[str, Any]]:
    """Networks currently loaded in memory: {network_id: network_info}."""
    return current_app.extensions['neuralnet']['networks']


def _model_dir() -> str:
    return current_app.config['MODEL_DIR']


def _register(network_id: str, net: Network, trained: bool,
              error: Optional[float]) -> Dict[str, Any]:
    info = {
        'network': net,
        'architecture': net.sizes,
        'trained': trained,
        'error': error
    }
    _active_networks()[network_id] = info
    return info


def reload_saved_networks(app: Flask) -> None:
    """
    Reload all saved networks from the store into memory.

    Keeps the in-memory registry in sync with the database across restarts.
    """
    model_dir = app.config['MODEL_DIR']
    active = app.extensions['neuralnet']['networks']
    saved_networks = list_saved_networks(model_dir)

    if not saved_networks:
        logger.info("No saved networks to reload")
        return

    loaded_count = 0
    for net_info in saved_networks:
        network_id = net_info['network_id']
        net = load_network(network_id, model_dir)
        if net is None:
            logger.warning(f"Failed to load network {network_id}")
            continue
        active[network_id] = {
            'network': net,
            'architecture': net_info['architecture'],
            'trained': net_info['trained'],
            'error': net_info['error']
        }
        loaded_count += 1

    logger.info(f"Reloaded {loaded_count} network(s) from database")


def create_app(model_dir: Optional[str] = None) -> Flask:
    """
    Build the Flask application.

    Args:
        model_dir: Directory of the SQLite store; MODEL_DIR or 'models'
            when omitted
    """
    configure_logging()

    app = Flask(__name__)
    CORS(app, resources={r"/api/*": {"origins": "*"}})

    app.config['MODEL_DIR'] = model_dir or os.getenv('MODEL_DIR', 'models')
    app.extensions['neuralnet'] = {'networks': {}}
    app.register_blueprint(networks_bp)

    reload_saved_networks(app)
    return app


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def _finite_or_none(value: float) -> Optional[float]:
    """Map NaN/inf to None so the value can go into JSON."""
    return float(value) if math.isfinite(value) else None


def array_to_float_list(values) -> List[Optional[float]]:
    return [_finite_or_none(float(v)) for v in values]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _get_network(network_id: str) -> Optional[Network]:
    info = _active_networks().get(network_id)
    return None if info is None else info['network']


# ============================================================================
# API ENDPOINTS
# ============================================================================

@networks_bp.route('/api/status', methods=['GET'])
def get_status():
    """Return server status and the number of networks in memory."""
    return jsonify({
        'status': 'online',
        'active_networks': len(_active_networks())
    }), 200


@networks_bp.route('/api/networks', methods=['POST'])
def create_network():
    """
    Create a new network.

    Request body (all optional except layer_sizes):
        {
            'layer_sizes': [2, 2, 1],
            'learning_rate': 0.005,
            'epochs': 1000,
            'threshold': 0.0,
            'activation': 'identity',
            'seed': 42
        }

    Returns:
        JSON with network_id, architecture, and status
    """
    data = request.get_json(silent=True) or {}
    layer_sizes = data.get('layer_sizes')
    learning_rate = data.get('learning_rate', DEFAULT_LEARNING_RATE)
    epochs = data.get('epochs', DEFAULT_EPOCHS)
    threshold = data.get('threshold', 0.0)
    activation = data.get('activation', 'identity')
    seed = data.get('seed')

    if (not isinstance(layer_sizes, list) or len(layer_sizes) != 3
            or not all(_is_positive_int(s) for s in layer_sizes)):
        logger.warning(f"Invalid architecture requested: {layer_sizes}")
        return jsonify({
            'error': 'layer_sizes must be a list of three positive integers'
        }), 400
    if not _is_number(learning_rate) or learning_rate <= 0:
        return jsonify({'error': 'learning_rate must be a positive number'}), 400
    if not _is_positive_int(epochs):
        return jsonify({'error': 'epochs must be a positive integer'}), 400
    if not _is_number(threshold):
        return jsonify({'error': 'threshold must be a number'}), 400
    if activation not in ACTIVATIONS:
        return jsonify({
            'error': f'activation must be one of {sorted(ACTIVATIONS)}'
        }), 400
    if seed is not None and (not isinstance(seed, int) or isinstance(seed, bool) or seed < 0):
        return jsonify({'error': 'seed must be a non-negative integer'}), 400

    network_id = str(uuid.uuid4())
    net = Network(*layer_sizes, learning_rate=learning_rate, epochs=epochs,
                  threshold=threshold, activation=activation, rng=seed)
    _register(network_id, net, trained=False, error=None)

    logger.info(f"Created network {network_id} with architecture {layer_sizes}")

    return jsonify({
        'network_id': network_id,
        'architecture': net.sizes,
        'status': 'created'
    }), 201


@networks_bp.route('/api/networks/import', methods=['POST'])
def import_network():
    """
    Create a network from a network document.

    Request body:
        {'document': '<NETWORK ...>...</NETWORK>'}
    """
    data = request.get_json(silent=True) or {}
    document = data.get('document')
    if not isinstance(document, str) or not document.strip():
        return jsonify({'error': 'document must be a non-empty string'}), 400

    try:
        net = from_xml(document)
    except DocumentFormatError as e:
        logger.warning(f"Rejected network document: {e}")
        return jsonify({'error': str(e)}), 400

    network_id = str(uuid.uuid4())
    _register(network_id, net, trained=True, error=None)
    save_network(net, network_id, model_dir=_model_dir(), trained=True)

    logger.info(f"Imported network {network_id} with architecture {net.sizes}")
    return jsonify({
        'network_id': network_id,
        'architecture': net.sizes,
        'status': 'imported'
    }), 201


@networks_bp.route('/api/networks/<network_id>/train', methods=['POST'])
def train_network(network_id: str):
    """
    Train a network and store the result.

    Request body, one of:
        {'sets': ['2,3;5', '3,2;5']}
        {'document': '<NETWORK><TRAINING>...</TRAINING></NETWORK>'}

    Training runs to completion before the response is sent.

    Returns:
        JSON with the error left on each example and the final error
    """
    net = _get_network(network_id)
    if net is None:
        logger.warning(f"Training requested for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    sets = data.get('sets')
    document = data.get('document')

    try:
        if sets is not None:
            if not isinstance(sets, list) or not sets or not all(isinstance(s, str) for s in sets):
                return jsonify({'error': 'sets must be a non-empty list of strings'}), 400
            document = document_from_sets(sets)
        elif not isinstance(document, str):
            return jsonify({'error': 'Provide either sets or document'}), 400

        errors = net.train(document, 'str')
    except (DocumentFormatError, InputShapeError) as e:
        logger.warning(f"Invalid training data for network {network_id}: {e}")
        return jsonify({'error': str(e)}), 400

    if not errors:
        logger.warning(f"Training document for network {network_id} has no examples")
        return jsonify({'error': 'Training data contains no TRAINING examples'}), 400

    final_error = _finite_or_none(errors[-1])
    diverged = sum(1 for e in errors if not math.isfinite(e))

    _register(network_id, net, trained=True, error=final_error)
    save_network(net, network_id, model_dir=_model_dir(),
                 trained=True, error=final_error)

    logger.info(
        f"Training completed for network {network_id}: "
        f"{len(errors)} example(s), final error {final_error}"
    )

    return jsonify({
        'network_id': network_id,
        'status': 'trained',
        'errors': array_to_float_list(errors),
        'final_error': final_error,
        'diverged': diverged
    }), 200


@networks_bp.route('/api/networks/<network_id>/predict', methods=['POST'])
def predict(network_id: str):
    """
    Propagate an input vector through a network.

    Request body:
        {'input': [4, 1]}
    """
    net = _get_network(network_id)
    if net is None:
        return jsonify({'error': 'Network not found'}), 404

    data = request.get_json(silent=True) or {}
    values = data.get('input')
    if not isinstance(values, list) or not all(_is_number(v) for v in values):
        return jsonify({'error': 'input must be a list of numbers'}), 400

    try:
        net.set_input(values)
    except InputShapeError as e:
        return jsonify({'error': str(e)}), 400

    net.propagate()
    return jsonify({
        'network_id': network_id,
        'input': values,
        'output': array_to_float_list(net.get_outputs()),
        'finite': net.is_finite()
    }), 200


@networks_bp.route('/api/networks/<network_id>/document', methods=['GET'])
def get_document(network_id: str):
    """Return the network document of a network as XML."""
    net = _get_network(network_id)
    if net is not None:
        document = to_xml(net)
    else:
        document = get_network_document(network_id, _model_dir())

    if document is None:
        return jsonify({'error': 'Network not found'}), 404
    return Response(document, mimetype='application/xml')


@networks_bp.route('/api/networks', methods=['GET'])
def list_networks():
    """List all available networks (both in-memory and saved)."""
    active = _active_networks()
    in_memory = [
        {
            'network_id': nid,
            'architecture': info['architecture'],
            'trained': info['trained'],
            'error': info['error'],
            'status': 'in_memory'
        }
        for nid, info in active.items()
    ]

    saved_only = []
    for net in list_saved_networks(_model_dir()):
        if net['network_id'] not in active:
            net['status'] = 'saved'
            saved_only.append(net)

    logger.debug(f"Listing networks: {len(in_memory)} in memory, {len(saved_only)} saved")
    return jsonify({'networks': in_memory + saved_only}), 200


@networks_bp.route('/api/networks/<network_id>', methods=['DELETE'])
def delete_network_endpoint(network_id: str):
    """Delete a network from both memory and the store."""
    active = _active_networks()
    deleted_from_memory = active.pop(network_id, None) is not None
    deleted_from_disk = delete_network(network_id, _model_dir())

    if not deleted_from_memory and not deleted_from_disk:
        logger.warning(f"Delete attempted for non-existent network: {network_id}")
        return jsonify({'error': 'Network not found'}), 404

    logger.info(f"Deleted network {network_id}: memory={deleted_from_memory}, disk={deleted_from_disk}")
    return jsonify({
        'network_id': network_id,
        'deleted_from_memory': deleted_from_memory,
        'deleted_from_disk': deleted_from_disk
    }), 200


@networks_bp.route('/api/networks', methods=['DELETE'])
def delete_all_networks():
    """Delete all networks from both memory and the store."""
    active = _active_networks()
    saved_ids = [net['network_id'] for net in list_saved_networks(_model_dir())]
    all_network_ids = sorted(set(active) | set(saved_ids))

    deleted_from_memory_count = 0
    deleted_from_disk_count = 0
    for network_id in all_network_ids:
        if active.pop(network_id, None) is not None:
            deleted_from_memory_count += 1
        if delete_network(network_id, _model_dir()):
            deleted_from_disk_count += 1

    logger.info(
        f"Deleted all networks: {len(all_network_ids)} total, "
        f"{deleted_from_memory_count} from memory, {deleted_from_disk_count} from disk"
    )
    return jsonify({
        'deleted_count': len(all_network_ids),
        'deleted_from_memory': deleted_from_memory_count,
        'deleted_from_disk': deleted_from_disk_count
    }), 200


@networks_bp.route('/api/networks/cleanup', methods=['POST'])
def cleanup_old_networks_endpoint():
    """
    Delete networks older than the given number of days.

    Request body (optional):
        {'days': 2}  # defaults to 2
    """
    data = request.get_json(silent=True) or {}
    days = data.get('days', 2)

    if not _is_number(days) or days < 0:
        return jsonify({'error': 'days must be a non-negative number'}), 400

    deleted_count = delete_old_networks(days=int(days), model_dir=_model_dir())
    if deleted_count == -1:
        return jsonify({'error': 'Error occurred during cleanup'}), 500

    # Drop networks from memory that no longer exist in the store
    active = _active_networks()
    saved_ids = {net['network_id'] for net in list_saved_networks(_model_dir())}
    for nid in [nid for nid in active if nid not in saved_ids and active[nid]['trained']]:
        del active[nid]

    logger.info(f"Manual cleanup: deleted {deleted_count} network(s) older than {days} day(s)")
    return jsonify({
        'deleted_count': deleted_count,
        'days': days
    }), 200


# ============================================================================
# SERVER STARTUP
# ============================================================================

def main() -> None:
    is_production = os.getenv('FLASK_ENV') == 'production'
    port = int(os.environ.get('PORT', 8000))

    app = create_app()
    logger.info(f"Starting server at http://localhost:{port}/")
    app.run(host='0.0.0.0', port=port, debug=not is_production, use_reloader=False)


if __name__ == '__main__':
    main()
