"""
layer.py
~~~~~~~~

Fixed-size layers of neurons and the full bipartite linking between them.
"""

import logging
from typing import Iterator, List, Optional, Sequence

import numpy as np

from .activation import Activation, IDENTITY
from .exceptions import InputShapeError
from .neuron import Neuron
from .synapse import Synapse, SynapseArena

logger = logging.getLogger(__name__)


class Layer:
    """
    Ordered, fixed-size collection of neurons.

    Args:
        size: Number of neurons (must be positive)
        activation: Activation function applied by :meth:`propagate`
        threshold: Bias given to every neuron of the layer
        synapses: Arena new synapses are stored in; layers that get linked
            together must share it
        rng: Generator for the initial synapse weights
    """

    def __init__(
        self,
        size: int,
        activation: Activation = IDENTITY,
        threshold: float = 0.0,
        synapses: Optional[SynapseArena] = None,
        rng: Optional[np.random.Generator] = None
    ):
        if isinstance(size, bool) or not isinstance(size, (int, np.integer)):
            raise TypeError(f"Layer size must be an integer, got {size!r}")
        if size <= 0:
            raise ValueError(f"Layer size must be positive, got {size}")

        self.activation = activation
        self.threshold = float(threshold)
        self.synapses = synapses if synapses is not None else SynapseArena()
        self.rng = rng if rng is not None else np.random.default_rng()
        self.previous: Optional['Layer'] = None
        self.neurons: List[Neuron] = [
            Neuron(activation, threshold) for _ in range(int(size))
        ]

    def size(self) -> int:
        return len(self.neurons)

    def __len__(self) -> int:
        return len(self.neurons)

    def __getitem__(self, index: int) -> Neuron:
        # Valid range is [0, size): reject negative indices and index == size
        if not 0 <= index < len(self.neurons):
            raise IndexError(
                f"Neuron index {index} out of range for layer of size "
                f"{len(self.neurons)}"
            )
        return self.neurons[index]

    def __iter__(self) -> Iterator[Neuron]:
        return iter(self.neurons)

    def link(self, previous: 'Layer') -> None:
        """
        Fully connect ``previous`` to this layer.

        Creates one synapse per (previous neuron, this neuron) pair with a
        random weight in [0, 1) and registers its id on both endpoints.

        Args:
            previous: Layer feeding this one

        Raises:
            ValueError: If the layers do not share a synapse arena
        """
        if previous.synapses is not self.synapses:
            raise ValueError("Linked layers must share the same synapse arena")

        for i, source in enumerate(previous.neurons):
            for j, destination in enumerate(self.neurons):
                synapse_id = self.synapses.add(Synapse(i, j, rng=self.rng))
                source.push_out(synapse_id)
                destination.push_in(synapse_id)

        self.previous = previous
        logger.debug(
            f"Linked {previous.size()} -> {self.size()} neurons "
            f"({previous.size() * self.size()} synapses)"
        )

    def _check_length(self, values: Sequence[float], what: str) -> None:
        if len(values) != len(self.neurons):
            raise InputShapeError(len(self.neurons), len(values), what)

    def set_input(self, values: Sequence[float]) -> None:
        """
        Write values straight into propagation and activation.

        Input neurons are pass-through: no threshold, no activation function.
        The length is checked before any neuron is touched.
        """
        values = [float(v) for v in values]
        self._check_length(values, 'input')
        for neuron, value in zip(self.neurons, values):
            neuron.set_prop(value)
            neuron.set_actv(value)

    def set_prop(self, values: Sequence[float]) -> None:
        values = [float(v) for v in values]
        self._check_length(values, 'propagation')
        for neuron, value in zip(self.neurons, values):
            neuron.set_prop(value)

    def set_actv(self, values: Sequence[float]) -> None:
        values = [float(v) for v in values]
        self._check_length(values, 'activation')
        for neuron, value in zip(self.neurons, values):
            neuron.set_actv(value)

    def propagate(self) -> None:
        """Recompute every neuron from the previous layer's activations."""
        if self.previous is None:
            raise RuntimeError("Cannot propagate a layer that is not linked")

        sources = self.previous.neurons
        for neuron in self.neurons:
            neuron.set_prop(neuron.propagate(self.synapses, sources) - neuron.threshold)
            neuron.set_actv(self.activation(neuron.propagation))

    def activations(self) -> np.ndarray:
        return np.array([n.activation for n in self.neurons])

    def propagations(self) -> np.ndarray:
        return np.array([n.propagation for n in self.neurons])

    def __repr__(self) -> str:
        return f"<Layer size={self.size()} threshold={self.threshold}>"
