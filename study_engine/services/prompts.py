from __future__ import annotations

from ..models.artifact import ArtifactKind


class PromptFactory:
    """
    Builds the generation prompt for each artifact kind.
    """
    _TEMPLATES = {
        ArtifactKind.SUMMARY: (
            "Please analyze the following text and create a comprehensive topic-wise summary.\n\n"
            "Instructions:\n"
            "1. First provide an overall summary paragraph\n"
            "2. Then break down the content into key topics with detailed explanations\n"
            "3. Make it educational and easy to understand\n"
            "4. Use clear headings and well-structured content\n\n"
            "Format the response as JSON with this exact structure:\n"
            "{{\n"
            '  "summary": "Write a comprehensive overall summary paragraph here",\n'
            '  "topics": [\n'
            '    {{"title": "Topic Title", "content": "Detailed explanation of this topic with key points and examples"}}\n'
            "  ]\n"
            "}}\n\n"
            "Text to analyze:\n{content}"
        ),
        ArtifactKind.FLASHCARDS: (
            "Create comprehensive flashcards from the following content.\n\n"
            "Instructions:\n"
            "1. Analyze the content and determine the optimal number of flashcards (15-25 cards)\n"
            "2. Create questions that test understanding, not just memorization\n"
            "3. Include different types: definitions, concepts, examples, applications\n"
            "4. Make answers clear and educational\n"
            "5. Cover all important topics from the content\n\n"
            "Format as JSON array:\n"
            "[\n"
            '  {{"question": "Clear, specific question", "answer": "Comprehensive answer with explanation"}}\n'
            "]\n\n"
            "Content:\n{content}"
        ),
        ArtifactKind.QUIZ: (
            "Create {count} high-quality multiple-choice questions from the following content.\n\n"
            "Instructions:\n"
            "1. Create exactly {count} questions\n"
            "2. Questions should test understanding, analysis, and application\n"
            "3. Include different difficulty levels (easy, medium, hard)\n"
            "4. Make sure all 4 options are plausible\n"
            "5. Avoid obvious wrong answers\n"
            "6. Cover different aspects of the content\n\n"
            "Format as JSON array:\n"
            "[\n"
            '  {{"question": "Clear, specific question", "options": ["option1", "option2", "option3", "option4"], "correctAnswer": 0}}\n'
            "]\n\n"
            "Content:\n{content}"
        ),
    }

    @classmethod
    def build(cls, kind: ArtifactKind, content: str, count: int | None = None) -> str:
        template = cls._TEMPLATES[ArtifactKind(kind)]
        if kind == ArtifactKind.QUIZ:
            if count is None:
                raise ValueError("Quiz prompts need a question count")
            return template.format(content=content, count=count)
        return template.format(content=content)
