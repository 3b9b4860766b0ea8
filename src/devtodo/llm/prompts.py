"""Prompt templates for task classification."""

from devtodo.models.extracted import TaskCategory

CATEGORIES = "|".join(c.value for c in TaskCategory)


class PromptTemplates:
    """Collection of prompt templates for turning chat messages into tasks."""

    TASK_EXTRACTION = "task_extraction"

    @staticmethod
    def task_extraction_system() -> str:
        """System prompt for classifying a single chat message into a task.

        Returns:
            Prompt text
        """
        return f"""You extract actionable development tasks from chat messages.

Return ONLY valid JSON (no markdown, no explanation):
{{
  "title": "Clear actionable title starting with verb (max 150 chars)",
  "description": "2-3 sentences explaining what was requested and why. Include key requirements.",
  "context": "Files, technologies, APIs, or dependencies mentioned",
  "category": "{CATEGORIES}",
  "topic": "Short topic name (1-3 words) describing the feature area"
}}

Rules:
- Title MUST start with action verb (Add, Fix, Update, Implement, Configure, Create, Build, Remove, etc.)
- Description should capture the full intent, not just summarize
- Context extracts technical specifics (file paths, package names, API endpoints)
- Omit sensitive data (API keys, passwords, tokens, secrets)
- Category: feature (new functionality), bugfix (fixing issues), refactor (code improvement), config (setup/configuration), docs (documentation), research (investigation/exploration)
- Topic: A short label for the feature area (e.g., "Authentication", "Docker Integration", "UI Components", "API Endpoints", "Database", "Testing", "Calendar Sync", "Email Import", "Settings", "Performance", "Security")
- If unclear, set category to "research" and topic to "General\""""

    @classmethod
    def system_prompt(cls, template_id: str) -> str:
        """Look up a system prompt by template id.

        Raises:
            KeyError: If the template id is unknown
        """
        templates = {cls.TASK_EXTRACTION: cls.task_extraction_system}
        return templates[template_id]()
