"""
network.py
~~~~~~~~~~

A three-layer (input, hidden, output) feed-forward network trained by
backpropagation with momentum.

Typical use::

    net = Network(2, 2, 1, learning_rate=0.005, epochs=2000)
    net.set_input([2, 3])
    net.propagate()
    net.set_expected(5)
    net.update()
    net.save('adder.xml')

All state (layers, synapse arena, random generator) belongs to the instance;
two networks never share mutable state.
"""

import logging
import math
from numbers import Number
from typing import List, Optional, Sequence, Union

import numpy as np

from .activation import Activation, get_activation
from .exceptions import InputShapeError
from .layer import Layer
from .synapse import Synapse, SynapseArena

logger = logging.getLogger(__name__)

Vector = Union[float, Sequence[float]]


class Network:
    """
    Fully connected input/hidden/output network.

    Args:
        input_size: Number of input neurons
        hidden_size: Number of hidden neurons
        output_size: Number of output neurons
        learning_rate: Step size of the weight updates; keep it small
        epochs: Epochs run by every call to :meth:`update`
        threshold: Bias of the hidden and output neurons
        activation: Activation name, callable or Activation (default identity)
        rng: Generator for the initial weights, or an int seed
    """

    def __init__(
        self,
        input_size: int,
        hidden_size: int,
        output_size: int,
        learning_rate: float,
        epochs: int,
        threshold: float = 0.0,
        activation: Union[str, Activation, None] = None,
        rng: Union[np.random.Generator, int, None] = None
    ):
        if epochs < 0:
            raise ValueError(f"epochs must be non-negative, got {epochs}")

        if not isinstance(rng, np.random.Generator):
            rng = np.random.default_rng(rng)

        self.learning_rate = float(learning_rate)
        self.epochs = int(epochs)
        self.epochs_remaining = self.epochs
        self.threshold = float(threshold)
        self.activation = get_activation(activation)
        self.rng = rng
        self.expected: List[float] = []

        self.synapses = SynapseArena()
        self.input = Layer(input_size, self.activation, self.threshold,
                           self.synapses, rng)
        self.hidden = Layer(hidden_size, self.activation, self.threshold,
                            self.synapses, rng)
        self.output = Layer(output_size, self.activation, self.threshold,
                            self.synapses, rng)
        self.link()

        logger.debug(
            f"Created network {self.sizes} with learning rate "
            f"{self.learning_rate}, {self.epochs} epochs"
        )

    @property
    def sizes(self) -> List[int]:
        return [self.input.size(), self.hidden.size(), self.output.size()]

    def link(self) -> None:
        """
        (Re)build the synapses: input -> hidden, then hidden -> output.

        Already called by the constructor. Any existing synapses are dropped
        and replaced with randomly weighted ones.
        """
        self.synapses.clear()
        for layer in (self.input, self.hidden, self.output):
            for neuron in layer:
                neuron.syn_clear()

        self.hidden.link(self.input)
        self.output.link(self.hidden)

    # ------------------------------------------------------------------
    # Forward pass
    # ------------------------------------------------------------------

    def set_input(self, values: Sequence[float]) -> None:
        """
        Feed an input vector to the network.

        Raises:
            InputShapeError: If the vector length differs from the input size;
                no neuron is modified in that case
        """
        self.input.set_input(values)

    def propagate(self) -> None:
        """Propagate the current input through the hidden and output layers."""
        self.hidden.propagate()
        self.output.propagate()

    def get_output(self) -> float:
        """Activation of the first output neuron."""
        return self.output[0].activation

    def get_outputs(self) -> np.ndarray:
        return self.output.activations()

    def is_finite(self) -> bool:
        """Whether every output activation is a finite number."""
        return bool(np.all(np.isfinite(self.get_outputs())))

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def _as_target(self, values: Vector) -> List[float]:
        if isinstance(values, Number):
            values = [values]
        target = [float(v) for v in values]
        if len(target) != self.output.size():
            raise InputShapeError(self.output.size(), len(target), 'expected')
        return target

    def set_expected(self, values: Vector) -> None:
        """
        Set the target vector used by :meth:`update`.

        A scalar is accepted for a network with a single output neuron.
        """
        self.expected = self._as_target(values)

    def error(self, expected: Optional[Vector] = None) -> float:
        """
        Training loss: half the sum of squared output differences.

        Args:
            expected: Target vector; the stored one when omitted

        Returns:
            float: 0.5 * sum((actual - expected) ** 2)
        """
        target = self.expected if expected is None else self._as_target(expected)
        if len(target) != self.output.size():
            raise InputShapeError(self.output.size(), len(target), 'expected')
        diff = self.get_outputs() - np.array(target)
        with np.errstate(over='ignore', invalid='ignore'):
            return float(0.5 * np.sum(diff ** 2))

    def _update_weights(self, epochs_elapsed: int) -> None:
        """Compute the pending delta of every synapse (backward pass)."""
        rate = self.learning_rate
        actv = self.activation
        beta = Synapse.momentum(self.epochs, epochs_elapsed) if epochs_elapsed > 0 else 0.0

        hidden = self.hidden.neurons
        inputs = self.input.neurons
        # Backpropagated error signal shared by every hidden neuron
        dk = 0.0

        for k, neuron in enumerate(self.output.neurons):
            gradient = (neuron.activation - self.expected[k]) * actv.derivative(neuron.propagation)

            for synapse_id in neuron.incoming:
                synapse = self.synapses[synapse_id]
                # Uses the weight before this epoch's commit
                dk += gradient * synapse.weight
                synapse.delta = (
                    -rate * gradient * hidden[synapse.source].activation
                    + beta * synapse.prev_delta
                )

        for neuron in hidden:
            gradient = dk * actv.derivative(neuron.propagation)

            for synapse_id in neuron.incoming:
                synapse = self.synapses[synapse_id]
                synapse.delta = (
                    -rate * gradient * inputs[synapse.source].activation
                    + beta * synapse.prev_delta
                )

    def _commit_changes(self) -> None:
        for synapse in self.synapses:
            synapse.weight += synapse.delta
            synapse.end_epoch()

    def update(self) -> None:
        """
        Run the epoch budget of backpropagation against the expected vector.

        Each epoch computes the synapse deltas, commits them to the weights
        and propagates again. Call :meth:`set_input`, :meth:`propagate` and
        :meth:`set_expected` first.
        """
        if len(self.expected) != self.output.size():
            raise RuntimeError("set_expected() must be called before update()")

        self.epochs_remaining = self.epochs
        while self.epochs_remaining > 0:
            self._update_weights(self.epochs - self.epochs_remaining)
            self._commit_changes()
            self.propagate()
            self.epochs_remaining -= 1

        loss = self.error()
        if not math.isfinite(loss):
            logger.warning(
                f"Output diverged after {self.epochs} epochs: "
                f"{self.get_outputs().tolist()}"
            )
        else:
            logger.debug(f"Update finished after {self.epochs} epochs, error {loss:.6g}")

    def train(self, source: str, source_type: str = 'file') -> List[float]:
        """
        Train on every example of a training document, in document order.

        Args:
            source: Path of the document, or the document itself
            source_type: 'file' or 'str'

        Returns:
            list: Error left on each example right after training on it.
                Non-finite values are reported, never retried.

        Raises:
            DocumentFormatError: If the document is malformed
            NetworkIOError: If the file cannot be read
        """
        from .training import load_training_set

        examples = load_training_set(source, source_type)
        errors = []
        for example in examples:
            self.set_input(example.inputs)
            self.propagate()
            self.set_expected(example.outputs)
            self.update()
            errors.append(self.error())

        diverged = sum(1 for e in errors if not math.isfinite(e))
        if diverged:
            logger.warning(f"{diverged} of {len(errors)} training example(s) diverged")
        logger.info(f"Trained network {self.sizes} on {len(errors)} example(s)")
        return errors

    # ------------------------------------------------------------------
    # Weights and persistence
    # ------------------------------------------------------------------

    def _connection(self, index: int):
        if index == 0:
            return self.input, self.hidden
        if index == 1:
            return self.hidden, self.output
        raise IndexError(f"Connection index must be 0 or 1, got {index}")

    @property
    def weights(self) -> List[np.ndarray]:
        """Weight matrices shaped (next layer, previous layer)."""
        matrices = []
        for index in (0, 1):
            previous, layer = self._connection(index)
            matrix = np.zeros((layer.size(), previous.size()))
            for neuron in layer:
                for synapse_id in neuron.incoming:
                    synapse = self.synapses[synapse_id]
                    matrix[synapse.destination, synapse.source] = synapse.weight
            matrices.append(matrix)
        return matrices

    def set_weights(self, index: int, matrix) -> None:
        """
        Overwrite one connection set.

        Args:
            index: 0 for input -> hidden, 1 for hidden -> output
            matrix: Weights shaped (next layer, previous layer)

        Raises:
            InputShapeError: If the matrix shape does not match the layers
        """
        previous, layer = self._connection(index)
        matrix = np.asarray(matrix, dtype=float)
        if matrix.shape != (layer.size(), previous.size()):
            raise InputShapeError(
                layer.size() * previous.size(), matrix.size, 'weight'
            )
        for neuron in layer:
            for synapse_id in neuron.incoming:
                synapse = self.synapses[synapse_id]
                synapse.weight = float(matrix[synapse.destination, synapse.source])

    def save(self, path: str) -> None:
        """
        Write the network document to ``path``.

        Raises:
            NetworkIOError: If the file cannot be written
        """
        from .network_document import save

        save(self, path)

    @classmethod
    def load(cls, path: str, activation=None) -> 'Network':
        """
        Rebuild a network saved with :meth:`save`.

        Args:
            path: Network document to read
            activation: Overrides the activation named in the document
                (needed for custom callables)

        Raises:
            NetworkFileNotFoundError: If the file does not exist
            DocumentFormatError: If the document is malformed
        """
        from .network_document import load

        return load(path, activation=activation)

    def __repr__(self) -> str:
        return (
            f"<Network sizes={self.sizes} learning_rate={self.learning_rate} "
            f"epochs={self.epochs} activation={self.activation.name}>"
        )
