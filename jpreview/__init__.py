"""Review-set selection and multiple-choice quizzes over a study event log."""

__version__ = "0.1.0"
