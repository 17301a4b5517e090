"""
network_document.py
~~~~~~~~~~~~~~~~~~~

Markup representation of a trained network.

Layout::

    <NETWORK INPUTS="2" HIDDEN="2" OUTPUTS="1" EPOCHS="2000"
             LEARNING_RATE="0.005" THRESHOLD="0.0" ACTIVATION="identity">
        <SYNAPSE CLASS="INHID" INPUT="0" OUTPUT="1" WEIGHT="0.4183..."/>
        <SYNAPSE CLASS="HIDOUT" INPUT="1" OUTPUT="0" WEIGHT="0.9021..."/>
        ...
    </NETWORK>

Weights are written with ``repr`` so a save/load round trip reproduces them
exactly. Transient neuron state (propagation, activation) is not stored; the
next propagate() recomputes it.
"""

import logging
import math
import xml.etree.ElementTree as ET
from typing import Dict, Optional, Tuple

import numpy as np

from .exceptions import DocumentFormatError, NetworkFileNotFoundError, NetworkIOError

logger = logging.getLogger(__name__)

CONNECTIONS = ('INHID', 'HIDOUT')
SIZE_ATTRIBUTES = ('INPUTS', 'HIDDEN', 'OUTPUTS')
XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


def to_element(network) -> ET.Element:
    """Build the NETWORK element describing ``network``."""
    inputs, hidden, outputs = network.sizes
    root = ET.Element('NETWORK', {
        'INPUTS': str(inputs),
        'HIDDEN': str(hidden),
        'OUTPUTS': str(outputs),
        'EPOCHS': str(network.epochs),
        'LEARNING_RATE': repr(network.learning_rate),
        'THRESHOLD': repr(network.threshold),
    })
    if network.activation.name:
        root.set('ACTIVATION', network.activation.name)
    else:
        logger.warning(
            f"Activation {network.activation!r} has no registered name; the "
            f"document loads as identity unless an activation is passed to load()"
        )

    for name, matrix in zip(CONNECTIONS, network.weights):
        rows, cols = matrix.shape
        for source in range(cols):
            for destination in range(rows):
                ET.SubElement(root, 'SYNAPSE', {
                    'CLASS': name,
                    'INPUT': str(source),
                    'OUTPUT': str(destination),
                    'WEIGHT': repr(float(matrix[destination, source])),
                })
    return root


def to_xml(network) -> str:
    """Serialize ``network`` to a network document string."""
    root = to_element(network)
    ET.indent(root, space='\t')
    return XML_DECLARATION + ET.tostring(root, encoding='unicode') + '\n'


def _number(root: ET.Element, attribute: str, kind=float):
    raw = root.get(attribute)
    if raw is None:
        raise DocumentFormatError(f"NETWORK element is missing the {attribute} attribute")
    try:
        value = kind(raw)
    except ValueError:
        raise DocumentFormatError(
            f"{attribute}='{raw}' is not a valid {kind.__name__}"
        ) from None
    if kind is float and not math.isfinite(value):
        raise DocumentFormatError(f"{attribute}='{raw}' is not finite")
    return value


def _read_synapses(
    root: ET.Element,
    sizes: Tuple[int, int, int]
) -> Dict[str, np.ndarray]:
    shapes = {
        'INHID': (sizes[1], sizes[0]),
        'HIDOUT': (sizes[2], sizes[1]),
    }
    elements = list(root)
    for element in elements:
        if element.tag != 'SYNAPSE':
            raise DocumentFormatError(f"Unexpected element <{element.tag}> in NETWORK")

    # Checked before anything is sized from the declared layer sizes
    expected = sum(rows * cols for rows, cols in shapes.values())
    if len(elements) != expected:
        raise DocumentFormatError(
            f"Document declares {expected} synapses for layers {list(sizes)}, "
            f"found {len(elements)}"
        )

    weights: Dict[Tuple[str, int, int], float] = {}
    for element in elements:
        name = element.get('CLASS')
        if name not in shapes:
            raise DocumentFormatError(
                f"SYNAPSE CLASS must be one of {CONNECTIONS}, got {name!r}"
            )
        source = _number(element, 'INPUT', int)
        destination = _number(element, 'OUTPUT', int)
        weight = _number(element, 'WEIGHT', float)

        rows, cols = shapes[name]
        if not (0 <= source < cols and 0 <= destination < rows):
            raise DocumentFormatError(
                f"{name} synapse {source}->{destination} is out of range for "
                f"layers of size {cols} and {rows}"
            )
        key = (name, source, destination)
        if key in weights:
            raise DocumentFormatError(f"Duplicate {name} synapse {source}->{destination}")
        weights[key] = weight

    # Count matched and no duplicates: every synapse is present exactly once
    matrices = {name: np.zeros(shape) for name, shape in shapes.items()}
    for (name, source, destination), weight in weights.items():
        matrices[name][destination, source] = weight
    return matrices


def from_element(root: ET.Element, activation=None):
    """
    Rebuild a network from a parsed NETWORK element.

    The network is constructed (and linked) from the declared sizes first,
    then every weight is overwritten with the stored one.

    Raises:
        DocumentFormatError: If the element is not a valid network document
    """
    from .network import Network

    if root.tag != 'NETWORK':
        raise DocumentFormatError(f"Root element must be NETWORK, got <{root.tag}>")

    sizes = tuple(_number(root, name, int) for name in SIZE_ATTRIBUTES)
    if any(size <= 0 for size in sizes):
        raise DocumentFormatError(f"Layer sizes must be positive, got {list(sizes)}")

    epochs = _number(root, 'EPOCHS', int)
    if epochs < 0:
        raise DocumentFormatError(f"EPOCHS must be non-negative, got {epochs}")
    learning_rate = _number(root, 'LEARNING_RATE')
    threshold = _number(root, 'THRESHOLD')

    if activation is None:
        activation = root.get('ACTIVATION')
    matrices = _read_synapses(root, sizes)

    try:
        network = Network(*sizes, learning_rate=learning_rate, epochs=epochs,
                          threshold=threshold, activation=activation)
    except ValueError as e:
        raise DocumentFormatError(str(e)) from e

    for index, name in enumerate(CONNECTIONS):
        network.set_weights(index, matrices[name])
    return network


def from_xml(text: str, activation=None):
    """
    Rebuild a network from a network document string.

    Raises:
        DocumentFormatError: If the text is not a valid network document
    """
    try:
        root = ET.fromstring(text)
    except ET.ParseError as e:
        raise DocumentFormatError(f"Invalid network document: {e}") from e
    return from_element(root, activation)


def save(network, path: str) -> None:
    """
    Write ``network`` to ``path``.

    Raises:
        NetworkIOError: If the file cannot be written
    """
    xml = to_xml(network)
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(xml)
    except OSError as e:
        raise NetworkIOError(f"Cannot write network file {path}: {e}") from e

    logger.info(f"Saved network {network.sizes} to {path}")


def load(path: str, activation: Optional[object] = None):
    """
    Load a network saved with :func:`save`.

    Args:
        path: File to read
        activation: Overrides the activation named in the document

    Raises:
        NetworkFileNotFoundError: If the file does not exist
        NetworkIOError: If the file cannot be read
        DocumentFormatError: If the file is not a valid network document
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            text = f.read()
    except FileNotFoundError as e:
        raise NetworkFileNotFoundError(f"Network file not found: {path}") from e
    except UnicodeDecodeError as e:
        raise DocumentFormatError(f"Network file {path} is not valid UTF-8") from e
    except OSError as e:
        raise NetworkIOError(f"Cannot read network file {path}: {e}") from e

    network = from_xml(text, activation)
    logger.info(f"Loaded network {network.sizes} from {path}")
    return network
