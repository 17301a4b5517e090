"""
test_training.py
~~~~~~~~~~~~~~~~

Tests for compact training sets and training documents.
"""

import xml.etree.ElementTree as ET

import pytest

from neuralnet.exceptions import (
    DocumentFormatError,
    NetworkFileNotFoundError,
    NetworkIOError,
)
from neuralnet.training import (
    TrainingExample,
    document_from_sets,
    load_training_set,
    parse_set,
    set_to_xml,
    split,
    write_training_set,
)


@pytest.mark.unit
class TestCompactNotation:
    """Test the "inputs;outputs" notation."""

    def test_split(self):
        """Test splitting a delimited list of numbers."""
        assert split(',', "2,3") == [2.0, 3.0]
        assert split(',', " 1.5 , -2 ") == [1.5, -2.0]
        assert split(':', "7") == [7.0]

    def test_split_rejects_non_numbers(self):
        """Test that a non-numeric field is a format error."""
        with pytest.raises(DocumentFormatError):
            split(',', "2,x")
        with pytest.raises(DocumentFormatError):
            split(',', "2,,3")

    def test_parse_set(self):
        """Test parsing one training set."""
        example = parse_set("2,3;5")
        assert example == TrainingExample([2.0, 3.0], [5.0])
        assert parse_set("1;0.5,0.25").outputs == [0.5, 0.25]

    @pytest.mark.parametrize("text", ["2,3", "2,3;", ";5", "a;b"])
    def test_parse_set_errors(self, text):
        """Test that malformed sets are rejected."""
        with pytest.raises(DocumentFormatError):
            parse_set(text)

    def test_set_to_xml(self):
        """Test the TRAINING element produced for one set."""
        element = ET.fromstring(set_to_xml(0, "2,3;5"))
        assert element.tag == 'TRAINING'
        assert element.get('ID') == '0'

        inputs = element.findall('INPUT')
        outputs = element.findall('OUTPUT')
        assert [e.get('ID') for e in inputs] == ['0', '1']
        assert [float(e.text) for e in inputs] == [2.0, 3.0]
        assert [float(e.text) for e in outputs] == [5.0]


@pytest.mark.unit
class TestTrainingDocuments:
    """Test reading and writing training documents."""

    def test_document_from_sets(self):
        """Test that a built document parses back to the same examples."""
        document = document_from_sets(["2,3;5", "3,2;5", "6,2;8"])
        assert ET.fromstring(document).tag == 'NETWORK'

        examples = load_training_set(document, 'str')
        assert examples == [
            TrainingExample([2.0, 3.0], [5.0]),
            TrainingExample([3.0, 2.0], [5.0]),
            TrainingExample([6.0, 2.0], [8.0]),
        ]

    def test_empty_document(self):
        """Test that a document without examples yields none."""
        assert load_training_set(document_from_sets([]), 'str') == []

    def test_collection_root_and_lowercase_tags(self):
        """Test the alternative root element and case-insensitive tags."""
        document = (
            '<training_collection>'
            '<training id="0"><input>1</input><input>2</input>'
            '<output>3</output></training>'
            '</training_collection>'
        )
        assert load_training_set(document, 'str') == [
            TrainingExample([1.0, 2.0], [3.0])
        ]

    @pytest.mark.parametrize("document", [
        '<NETWORK><TRAINING>',
        '<MODEL><TRAINING><INPUT>1</INPUT><OUTPUT>1</OUTPUT></TRAINING></MODEL>',
        '<NETWORK><TRAINING><INPUT>1</INPUT></TRAINING></NETWORK>',
        '<NETWORK><TRAINING><INPUT>one</INPUT><OUTPUT>1</OUTPUT></TRAINING></NETWORK>',
    ])
    def test_malformed_documents(self, document):
        """Test that broken training documents are format errors."""
        with pytest.raises(DocumentFormatError):
            load_training_set(document, 'str')

    def test_unknown_source_type(self):
        """Test that only 'file' and 'str' sources are accepted."""
        with pytest.raises(ValueError):
            load_training_set('<NETWORK/>', 'url')

    def test_write_and_read_file(self, tmp_path):
        """Test writing a document from mixed examples and reading it back."""
        path = tmp_path / "training.xml"
        write_training_set(str(path), ["2,3;5", TrainingExample([0.1], [0.2])])

        examples = load_training_set(str(path))
        assert examples[0] == TrainingExample([2.0, 3.0], [5.0])
        assert examples[1] == TrainingExample([0.1], [0.2])

    def test_missing_file(self, tmp_path):
        """Test that a missing training file is not a format error."""
        with pytest.raises(NetworkFileNotFoundError):
            load_training_set(str(tmp_path / "absent.xml"))

    def test_unwritable_path(self, tmp_path):
        """Test that writing into a missing directory raises NetworkIOError."""
        with pytest.raises(NetworkIOError):
            write_training_set(str(tmp_path / "missing" / "training.xml"), ["1;1"])
