"""
neuralnet package
~~~~~~~~~~~~~~~~~

Three-layer feed-forward neural network trained by backpropagation with
momentum. Contains the network implementation, training-set and network
document handling, the SQLite model store, and the API server.
"""

from .activation import Activation, ACTIVATIONS, IDENTITY, SIGMOID, TANH, get_activation
from .exceptions import (
    NeuralNetError,
    InputShapeError,
    DocumentFormatError,
    NetworkIOError,
    NetworkFileNotFoundError,
)
from .layer import Layer
from .network import Network
from .neuron import Neuron
from .synapse import BETA0, Synapse, SynapseArena
from .training import TrainingExample, document_from_sets, load_training_set, parse_set

__version__ = "1.0.0"
