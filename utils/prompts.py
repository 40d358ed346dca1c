"""
Centralized prompt templates for the Text2SQL system.
"""
from typing import Dict, List
from dataclasses import dataclass


@dataclass
class PromptTemplate:
    """Template for LLM prompts."""
    system_prompt: str
    user_prompt_template: str
    description: str
    parameters: List[str]


class PromptManager:
    """Centralized prompt management."""

    def __init__(self):
        self.prompts = self._initialize_prompts()

    def _initialize_prompts(self) -> Dict[str, PromptTemplate]:
        """Initialize all prompt templates."""
        return {
            "sql_generation": PromptTemplate(
                system_prompt="You are a SQL expert. You translate natural language questions into SQL "
                              "using only the tables and columns of the database schema you are given.",

                user_prompt_template="""Given the following database schema and a natural language question, generate a SQL query.

Database Schema:
{schema_context}

Question: {question}

Generate a SQL query that answers this question. Provide your response in the following JSON format:
{{
  "sql": "your SQL query here",
  "confidence": 0.95,
  "explanation": "Brief explanation of the query"
}}

"confidence" is a number between 0 and 1 describing how likely the query is to be correct.
If the schema above does not contain what the question needs, give a low confidence.
Make sure the SQL is syntactically correct and follows {dialect} conventions.
Return only the JSON object.""",

                description="Generate SQL with a self-reported confidence from retrieved schema context",
                parameters=["schema_context", "question", "dialect"]
            )
        }

    def get_prompt(self, prompt_type: str) -> PromptTemplate:
        """Get a specific prompt template."""
        if prompt_type not in self.prompts:
            raise ValueError(f"Unknown prompt type: {prompt_type}")
        return self.prompts[prompt_type]

    def format_prompt(self, prompt_type: str, **kwargs) -> tuple[str, str]:
        """Format a prompt with given parameters."""
        template = self.get_prompt(prompt_type)

        missing_params = [param for param in template.parameters if param not in kwargs]
        if missing_params:
            raise ValueError(f"Missing required parameters: {missing_params}")

        user_prompt = template.user_prompt_template.format(**kwargs)

        return template.system_prompt, user_prompt


prompt_manager = PromptManager()


def get_sql_generation_prompt(question: str, schema_context: str,
                              dialect: str = "MySQL") -> tuple[str, str]:
    """Get formatted SQL generation prompt as (system_prompt, user_prompt)."""
    return prompt_manager.format_prompt(
        "sql_generation",
        question=question,
        schema_context=schema_context,
        dialect=dialect
    )
