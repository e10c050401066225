"""Prompt templates for abstract and story generation."""

DEFAULT_IDEA = "Create a detailed story idea."


def abstract_prompt(instruction: str, language: str, num_chapters: int) -> str:
    """Prompt asking for a chaptered story plan."""
    prompt = f"""Write a concise, compelling story writing plan.
It needs to include the setting, the names of the main characters and a detailed plan for all {num_chapters} chapters.
"""
    if instruction.strip():
        prompt += f"\nStory Idea: {instruction.strip()}"
    else:
        prompt += f" {DEFAULT_IDEA}"
    prompt += f"\nOutput the plan in {language}."
    return prompt


def chapter_count_prompt(abstract: str) -> str:
    """Prompt asking for the bare number of planned chapters."""
    return f"""Given the following complete story abstract (plan), please return ONLY the total number of chapters planned within it.
Do not include any other text, explanation, or formatting. Just the pure number.
If no chapters are explicitly outlined, return 0.

--- Story Abstract ---
{abstract}
--- End Story Abstract ---
"""


def written_chapters_prompt(story_text: str) -> str:
    """Prompt asking for the number of the last fully written chapter."""
    return f"""Given the following story text, identify the number of the last *fully written* chapter.
Look for chapter headers like '## Chapter X' (where X is the chapter number).
Return ONLY the number.
If no fully written chapters are found, or if the last detected chapter appears incomplete (e.g., ends abruptly or contains error messages), return 0.
Do not include any other text, explanation, or formatting. Just the pure integer number.

--- Existing Story Content ---
{story_text}
--- End Existing Story Content ---
"""


def chapter_prompt(chapter_number: int, words_per_chapter: int, abstract: str, previous_chapters: str) -> str:
    """Prompt asking for the next chapter."""
    return f"""Given the following complete story abstract (plan) and the chapters already written, please write Chapter {chapter_number} of the story.
Generate a short title for the chapter.
The chapter should be approximately {words_per_chapter} words. Focus on progressing the narrative as outlined in the abstract for this specific chapter.

--- Full Story Abstract (Plan) ---
{abstract}
--- End Full Story Abstract (Plan) ---

--- Previously Written Chapters ---
{previous_chapters}
--- End Previously Written Chapters ---

Write Chapter {chapter_number} now, ensuring it flows logically from previous chapters and adheres to the overall story plan.
"""


def parse_integer_reply(reply: str) -> int:
    """Parse a bare integer reply: trimmed, first line only.

    Raises ValueError when the first line is not an integer.
    """
    stripped = reply.strip()
    first_line = stripped.split("\n", 1)[0].strip()
    try:
        return int(first_line)
    except ValueError:
        raise ValueError(f"could not parse an integer from model reply '{first_line}'") from None
