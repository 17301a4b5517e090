"""
training.py
~~~~~~~~~~~

Training sets: the compact ``"in1,in2,...;out1,out2,..."`` notation and the
markup training document it converts to.

A training document looks like::

    <NETWORK>
        <TRAINING ID="0">
            <INPUT ID="0">2.000000</INPUT>
            <INPUT ID="1">3.000000</INPUT>
            <OUTPUT ID="0">5.000000</OUTPUT>
        </TRAINING>
    </NETWORK>

``TRAINING_COLLECTION`` is accepted as the root element as well.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List, NamedTuple, Optional

from .exceptions import DocumentFormatError, NetworkFileNotFoundError, NetworkIOError

logger = logging.getLogger(__name__)

ROOT_ELEMENTS = ('NETWORK', 'TRAINING_COLLECTION')

XML_HEADER = (
    '<?xml version="1.0" encoding="utf-8"?>\n'
    '<!-- Automatically generated by the neuralnet package -->\n\n'
    '<NETWORK>\n'
)


class TrainingExample(NamedTuple):
    """One input vector with its expected output vector."""
    inputs: List[float]
    outputs: List[float]


def split(delim: str, text: str) -> List[float]:
    """
    Split a delimited string of numbers.

    Args:
        delim: Delimiter, e.g. ','
        text: String such as "2,3"

    Returns:
        list: The values as floats

    Raises:
        DocumentFormatError: If a field is not a number
    """
    values = []
    for field in text.split(delim):
        try:
            values.append(float(field.strip()))
        except ValueError:
            raise DocumentFormatError(
                f"Invalid number '{field.strip()}' in '{text}'"
            ) from None
    return values


def parse_set(text: str) -> TrainingExample:
    """
    Parse one training set in compact notation, e.g. ``"2,3;5"``.

    Raises:
        DocumentFormatError: If the ';' separator is missing or a value is
            not a number
    """
    if ';' not in text:
        raise DocumentFormatError(
            f"Training set '{text}' has no ';' between inputs and outputs"
        )
    inputs, outputs = text.split(';', 1)
    return TrainingExample(split(',', inputs), split(',', outputs))


def init_xml() -> str:
    """Opening of a training document; add sets, then :func:`close_xml`."""
    return XML_HEADER


def close_xml(xml: str) -> str:
    return xml + '</NETWORK>\n'


def example_to_xml(example_id: int, example: TrainingExample) -> str:
    """Render one example as a ``TRAINING`` element."""
    lines = [f'\t<TRAINING ID="{example_id}">']
    for i, value in enumerate(example.inputs):
        lines.append(f'\t\t<INPUT ID="{i}">{value!r}</INPUT>')
    for i, value in enumerate(example.outputs):
        lines.append(f'\t\t<OUTPUT ID="{i}">{value!r}</OUTPUT>')
    lines.append('\t</TRAINING>\n')
    return '\n'.join(lines) + '\n'


def set_to_xml(example_id: int, text: str) -> str:
    """
    Convert a compact training set into a ``TRAINING`` element.

    ``set_to_xml(0, "2,3;5")`` gives a TRAINING element with ID 0, two
    INPUT children (2 and 3) and one OUTPUT child (5).
    """
    return example_to_xml(example_id, parse_set(text))


def document_from_sets(sets: Iterable[str]) -> str:
    """Build a complete training document from compact training sets."""
    xml = init_xml()
    for example_id, text in enumerate(sets):
        xml += set_to_xml(example_id, text)
    return close_xml(xml)


def document_from_examples(examples: Iterable[TrainingExample]) -> str:
    xml = init_xml()
    for example_id, example in enumerate(examples):
        xml += example_to_xml(example_id, example)
    return close_xml(xml)


def _children(element: ET.Element, name: str) -> List[ET.Element]:
    return [child for child in element if child.tag.upper() == name]


def _value(element: ET.Element) -> float:
    text = (element.text or '').strip()
    try:
        return float(text)
    except ValueError:
        raise DocumentFormatError(
            f"<{element.tag}> holds '{text}', expected a number"
        ) from None


def parse_document(root: ET.Element) -> List[TrainingExample]:
    """
    Extract the examples from a parsed training document.

    Raises:
        DocumentFormatError: On an unexpected root, an example without
            inputs or outputs, or a non-numeric value
    """
    if root.tag.upper() not in ROOT_ELEMENTS:
        raise DocumentFormatError(
            f"Unexpected root element <{root.tag}>, expected one of {ROOT_ELEMENTS}"
        )

    examples = []
    for position, training in enumerate(_children(root, 'TRAINING')):
        inputs = [_value(e) for e in _children(training, 'INPUT')]
        outputs = [_value(e) for e in _children(training, 'OUTPUT')]
        if not inputs or not outputs:
            raise DocumentFormatError(
                f"Training example {training.get('ID', position)} needs at "
                f"least one INPUT and one OUTPUT"
            )
        examples.append(TrainingExample(inputs, outputs))
    return examples


def load_training_set(source: str, source_type: str = 'file') -> List[TrainingExample]:
    """
    Read the examples of a training document.

    Args:
        source: Path of the document, or the document text
        source_type: 'file' (default) or 'str'

    Returns:
        list: TrainingExample objects in document order

    Raises:
        DocumentFormatError: If the document is not well formed or not a
            training document
        NetworkFileNotFoundError: If the file does not exist
        NetworkIOError: If the file cannot be read
    """
    try:
        if source_type == 'file':
            root = ET.parse(source).getroot()
        elif source_type == 'str':
            root = ET.fromstring(source)
        else:
            raise ValueError(f"source_type must be 'file' or 'str', got {source_type!r}")
    except ET.ParseError as e:
        raise DocumentFormatError(f"Invalid training document: {e}") from e
    except FileNotFoundError as e:
        raise NetworkFileNotFoundError(f"Training file not found: {source}") from e
    except OSError as e:
        raise NetworkIOError(f"Cannot read training file {source}: {e}") from e

    examples = parse_document(root)
    logger.debug(f"Loaded {len(examples)} training example(s)")
    return examples


def write_training_set(
    path: str,
    examples: Iterable,
    encoding: Optional[str] = 'utf-8'
) -> None:
    """
    Write a training document.

    Args:
        path: Destination file
        examples: TrainingExample objects or compact notation strings
        encoding: File encoding

    Raises:
        NetworkIOError: If the file cannot be written
    """
    examples = [parse_set(e) if isinstance(e, str) else TrainingExample(*e)
                for e in examples]
    xml = document_from_examples(examples)
    try:
        with open(path, 'w', encoding=encoding) as f:
            f.write(xml)
    except OSError as e:
        raise NetworkIOError(f"Cannot write training file {path}: {e}") from e

    logger.info(f"Wrote {len(examples)} training example(s) to {path}")
