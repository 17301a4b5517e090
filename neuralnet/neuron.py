"""
neuron.py
~~~~~~~~~

A single neuron: propagation value, activation value, threshold and the ids
of the synapses connected to it.
"""

from typing import List, Sequence

from .activation import Activation, IDENTITY


class Neuron:
    """
    Neuron of a fully connected layer.

    Args:
        activation: Activation function of the owning network
        threshold: Bias subtracted from the weighted input sum
    """

    def __init__(self, activation: Activation = IDENTITY, threshold: float = 0.0):
        self.activation_fn = activation
        self.threshold = float(threshold)
        self.propagation = 0.0
        self.activation = 0.0
        self.incoming: List[int] = []
        self.outgoing: List[int] = []

    def set_prop(self, value: float) -> None:
        self.propagation = float(value)

    def set_actv(self, value: float) -> None:
        """Store an activation value as is; the caller applies f."""
        self.activation = float(value)

    def propagate(self, synapses, sources: Sequence['Neuron']) -> float:
        """
        Weighted sum of the source activations over the incoming synapses.

        Args:
            synapses: Arena the incoming ids refer to
            sources: Neurons of the previous layer

        Returns:
            float: Sum of weight * source activation (0.0 with no inputs)
        """
        total = 0.0
        for synapse_id in self.incoming:
            synapse = synapses[synapse_id]
            total += synapse.weight * sources[synapse.source].activation
        return total

    def push_in(self, synapse_id: int) -> None:
        self.incoming.append(synapse_id)

    def push_out(self, synapse_id: int) -> None:
        self.outgoing.append(synapse_id)

    def n_in(self) -> int:
        return len(self.incoming)

    def n_out(self) -> int:
        return len(self.outgoing)

    def syn_clear(self) -> None:
        """Forget all synapses, before the network is relinked."""
        self.incoming.clear()
        self.outgoing.clear()

    def __repr__(self) -> str:
        return (
            f"<Neuron prop={self.propagation:.6g} actv={self.activation:.6g} "
            f"in={self.n_in()} out={self.n_out()}>"
        )
