import unittest

import continuo.intervals


class IntervalTests (unittest.TestCase):

	"""
	Tests for interval classification and motion analysis.
	"""

	def test_classification_uses_interval_class (self) -> None:

		"""
		Compound intervals behave like their simple forms.
		"""

		self.assertTrue(continuo.intervals.is_harsh(60, 62))
		self.assertTrue(continuo.intervals.is_harsh(60, 74))
		self.assertTrue(continuo.intervals.is_harsh(60, 71))
		self.assertTrue(continuo.intervals.is_perfect(48, 67))
		self.assertTrue(continuo.intervals.is_consonant(60, 64))
		self.assertFalse(continuo.intervals.is_consonant(60, 66))


	def test_analyze_motion (self) -> None:

		"""
		Each kind of two-voice motion is recognised.
		"""

		self.assertEqual(continuo.intervals.analyze_motion(60, 60, 48, 48), "static")
		self.assertEqual(continuo.intervals.analyze_motion(60, 62, 48, 48), "oblique")
		self.assertEqual(continuo.intervals.analyze_motion(60, 62, 48, 45), "contrary")
		self.assertEqual(continuo.intervals.analyze_motion(60, 62, 48, 50), "parallel")
		self.assertEqual(continuo.intervals.analyze_motion(60, 64, 48, 50), "similar")


	def test_parallel_fifths_and_octaves (self) -> None:

		"""
		Fifth to fifth and octave to octave in the same direction are parallel perfects.
		"""

		# C-G up to D-A
		self.assertTrue(continuo.intervals.is_parallel_perfect(67, 69, 60, 62))
		# C-C up to D-D
		self.assertTrue(continuo.intervals.is_parallel_perfect(72, 74, 60, 62))
		# Contrary motion into a fifth is fine
		self.assertFalse(continuo.intervals.is_parallel_perfect(67, 69, 60, 50))


	def test_hidden_perfect (self) -> None:

		"""
		Similar motion from a third into a fifth is a hidden fifth.
		"""

		self.assertTrue(continuo.intervals.is_hidden_perfect(64, 69, 60, 62))

		# Oblique motion into a fifth is not hidden.
		self.assertFalse(continuo.intervals.is_hidden_perfect(64, 67, 60, 60))


	def test_scale_pitch_classes (self) -> None:

		"""
		Scale tables start on the tonic.
		"""

		self.assertEqual(continuo.intervals.scale_pitch_classes(2, "minor"), [2, 4, 5, 7, 9, 10, 0])
		self.assertEqual(continuo.intervals.scale_pitch_classes(9, "harmonic minor")[6], 8)
