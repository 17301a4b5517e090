"""
synapse.py
~~~~~~~~~~

Weighted edges between neurons of adjacent layers.

Synapses live in a :class:`SynapseArena` owned by one network. Neurons keep
integer ids into the arena instead of references to synapse objects, and a
synapse refers to its endpoints by neuron index within their layers.
"""

from typing import Iterator, List, Optional

import numpy as np

# Initial value of the momentum term
BETA0 = 0.7


class Synapse:
    """
    A weighted directed edge from a neuron of one layer to a neuron of the next.

    Args:
        source: Index of the source neuron in the previous layer
        destination: Index of the destination neuron in the next layer
        weight: Initial weight; drawn from ``rng`` when omitted
        rng: Generator used for the random weight
    """

    __slots__ = ('source', 'destination', 'weight', 'delta', 'prev_delta')

    def __init__(
        self,
        source: int,
        destination: int,
        weight: Optional[float] = None,
        rng: Optional[np.random.Generator] = None
    ):
        if weight is None:
            if rng is None:
                rng = np.random.default_rng()
            weight = rng.random()

        self.source = source
        self.destination = destination
        self.weight = float(weight)
        self.delta = 0.0
        self.prev_delta = 0.0

    def end_epoch(self) -> None:
        """Hand the pending delta over to ``prev_delta`` and clear it."""
        self.prev_delta = self.delta
        self.delta = 0.0

    @staticmethod
    def momentum(total_epochs: int, epochs_elapsed: int) -> float:
        """
        Inertial momentum after ``epochs_elapsed`` of ``total_epochs`` epochs.

        Starts at BETA0 and decays towards zero, damping the oscillations
        caused by random initial weights early in training.
        """
        if total_epochs <= 0:
            return 0.0
        return (BETA0 * total_epochs) / (20 * epochs_elapsed + total_epochs)

    def __repr__(self) -> str:
        return (
            f"<Synapse {self.source}->{self.destination} "
            f"weight={self.weight:.6g} delta={self.delta:.6g}>"
        )


class SynapseArena:
    """Network-owned storage for synapses; a synapse's id is its position."""

    def __init__(self):
        self._synapses: List[Synapse] = []

    def add(self, synapse: Synapse) -> int:
        self._synapses.append(synapse)
        return len(self._synapses) - 1

    def clear(self) -> None:
        self._synapses.clear()

    def __getitem__(self, synapse_id: int) -> Synapse:
        return self._synapses[synapse_id]

    def __len__(self) -> int:
        return len(self._synapses)

    def __iter__(self) -> Iterator[Synapse]:
        return iter(self._synapses)
