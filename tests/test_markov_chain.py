import random
import unittest

import continuo.markov_chain


class MarkovChainTests (unittest.TestCase):

	"""
	Tests for weighted choice and the Markov chain.
	"""

	def test_single_transition (self) -> None:

		"""
		A single transition should always be selected.
		"""

		transitions = {"A": [("B", 1)], "B": [("A", 1)]}
		chain = continuo.markov_chain.MarkovChain(transitions=transitions, initial_state="A", rng=random.Random(1))

		self.assertEqual(chain.step(), "B")
		self.assertEqual(chain.state, "B")
		self.assertEqual(chain.step(), "A")


	def test_unknown_initial_state_raises (self) -> None:

		"""
		The starting state must be one of the transition sources.
		"""

		with self.assertRaises(ValueError):
			continuo.markov_chain.MarkovChain({"A": [("A", 1)]}, "Z", random.Random(1))


	def test_probability_is_normalized (self) -> None:

		"""
		Weights are relative; probability divides by their total.
		"""

		chain = continuo.markov_chain.MarkovChain({"A": [("A", 1), ("B", 3)], "B": [("A", 1)]}, "A", random.Random(1))

		self.assertAlmostEqual(chain.probability("A", "B"), 0.75)
		self.assertAlmostEqual(chain.probability("B", "B"), 0.0)


	def test_invalid_weights_raise (self) -> None:

		"""
		Empty, all-zero and negative weights should raise in choose_weighted.
		"""

		with self.assertRaises(ValueError):
			continuo.markov_chain.choose_weighted([], random.Random(1))

		with self.assertRaises(ValueError):
			continuo.markov_chain.choose_weighted([("A", 0)], random.Random(1))

		with self.assertRaises(ValueError):
			continuo.markov_chain.choose_weighted([("A", 1), ("B", -1)], random.Random(1))


	def test_zero_weight_never_chosen (self) -> None:

		"""
		An option with zero weight never comes up, however many draws.
		"""

		rng = random.Random(7)
		picks = {continuo.markov_chain.choose_weighted([("A", 0), ("B", 0.5), ("C", 0.5)], rng) for _ in range(200)}

		self.assertNotIn("A", picks)
		self.assertEqual(picks, {"B", "C"})


	def test_same_seed_same_choices (self) -> None:

		"""
		The choice sequence depends only on the seed.
		"""

		options = [("A", 1), ("B", 2), ("C", 3)]
		first = [continuo.markov_chain.choose_weighted(options, random.Random("x")) for _ in range(5)]
		second = [continuo.markov_chain.choose_weighted(options, random.Random("x")) for _ in range(5)]

		self.assertEqual(first, second)
