"""QuizWise: AI-generated multiple-choice quizzes with a topic chat assistant."""
