"""
activation.py
~~~~~~~~~~~~~

Activation functions used by the neurons of a network.

An :class:`Activation` bundles a scalar function with its derivative. When no
analytic derivative is given, the derivative is estimated with a forward
finite difference, so any ``float -> float`` callable can drive training.
"""

import logging
from typing import Callable, Dict, Optional

import numpy as np

logger = logging.getLogger(__name__)

# Step used by the finite-difference derivative
DERIVATIVE_STEP = 1e-6


class Activation:
    """
    Activation function with its derivative.

    Args:
        function: Scalar activation function f(x)
        derivative: Analytic derivative f'(x), or None for a numerical one
        name: Registry name, written to persisted network documents
    """

    def __init__(
        self,
        function: Callable[[float], float],
        derivative: Optional[Callable[[float], float]] = None,
        name: Optional[str] = None
    ):
        self.function = function
        self._derivative = derivative
        self.name = name

    def __call__(self, x: float) -> float:
        return float(self.function(x))

    def derivative(self, x: float) -> float:
        """
        Evaluate f'(x).

        Falls back to ``(f(x + h) - f(x)) / h`` with ``h = DERIVATIVE_STEP``
        when the activation was built without an analytic derivative.
        """
        if self._derivative is not None:
            return float(self._derivative(x))
        return (self(x + DERIVATIVE_STEP) - self(x)) / DERIVATIVE_STEP

    @property
    def has_analytic_derivative(self) -> bool:
        return self._derivative is not None

    def __repr__(self) -> str:
        return f"<Activation {self.name or self.function!r}>"


def _sigmoid(x: float) -> float:
    return 1.0 / (1.0 + np.exp(-x))


def _sigmoid_prime(x: float) -> float:
    s = _sigmoid(x)
    return s * (1.0 - s)


def _tanh_prime(x: float) -> float:
    return 1.0 - np.tanh(x) ** 2


IDENTITY = Activation(lambda x: x, lambda x: 1.0, name='identity')
SIGMOID = Activation(_sigmoid, _sigmoid_prime, name='sigmoid')
TANH = Activation(np.tanh, _tanh_prime, name='tanh')

ACTIVATIONS: Dict[str, Activation] = {
    a.name: a for a in (IDENTITY, SIGMOID, TANH)
}


def get_activation(activation=None) -> Activation:
    """
    Resolve an activation from a name, a callable or an Activation.

    Args:
        activation: None (identity), a registered name, an Activation, or a
            plain callable whose derivative will be estimated numerically

    Returns:
        Activation: The resolved activation

    Raises:
        ValueError: If a name is not registered
    """
    if activation is None:
        return IDENTITY
    if isinstance(activation, Activation):
        return activation
    if isinstance(activation, str):
        try:
            return ACTIVATIONS[activation.lower()]
        except KeyError:
            raise ValueError(
                f"Unknown activation '{activation}', expected one of "
                f"{sorted(ACTIVATIONS)}"
            ) from None
    if callable(activation):
        logger.debug(
            f"Using numerical derivative for custom activation {activation!r}"
        )
        return Activation(activation)
    raise TypeError(f"Cannot build an activation from {activation!r}")
