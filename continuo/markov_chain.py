"""Weighted choice and a small Markov chain driven by an explicit random stream.

Every random decision in Continuo goes through a ``random.Random`` that the
caller owns, so a seed reproduces the whole piece.
"""

import random
import typing


StateType = typing.TypeVar("StateType")


def choose_weighted (options: typing.Sequence[typing.Tuple[StateType, float]], rng: random.Random) -> StateType:

	"""
	Choose one item from a list of weighted options.

	Weights are relative and need not sum to 1. Zero weights are never chosen.

	Raises:
		ValueError: If there are no options, a weight is negative, or all are zero.
	"""

	if not options:
		raise ValueError("Options cannot be empty")

	total_weight = 0.0

	for _, weight in options:
		if weight < 0:
			raise ValueError("Weights cannot be negative")
		total_weight += weight

	if total_weight <= 0:
		raise ValueError("At least one weight must be positive")

	roll = rng.uniform(0, total_weight)
	accum = 0.0

	for option, weight in options:
		if weight == 0:
			continue
		accum += weight
		if roll <= accum:
			return option

	return [option for option, weight in options if weight > 0][-1]


class MarkovChain (typing.Generic[StateType]):

	"""
	A weighted Markov chain over arbitrary hashable states.

	Example:
		```python
		chain = MarkovChain({"a": [("a", 1), ("b", 3)], "b": [("a", 1)]}, "a", rng)
		chain.step()  # "b" three times in four
		```
	"""

	def __init__ (
		self,
		transitions: typing.Dict[StateType, typing.List[typing.Tuple[StateType, float]]],
		initial_state: StateType,
		rng: random.Random
	) -> None:

		"""
		Initialize the chain with transitions and a starting state.
		"""

		if not transitions:
			raise ValueError("Transitions cannot be empty")

		if initial_state not in transitions:
			raise ValueError("Initial state must exist in transitions")

		self.transitions = transitions
		self.rng = rng
		self.state = initial_state


	def step (self) -> StateType:

		"""
		Advance to the next state and return it.
		"""

		options = self.transitions.get(self.state, [])

		if options:
			self.state = choose_weighted(options, self.rng)

		return self.state


	def probability (self, source: StateType, target: StateType) -> float:

		"""
		Return the normalized probability of moving from ``source`` to ``target``.
		"""

		options = self.transitions.get(source, [])
		total = sum(weight for _, weight in options)

		if total <= 0:
			return 0.0

		return sum(weight for state, weight in options if state == target) / total
