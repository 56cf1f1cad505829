"""Prompt templates sent to the completion model."""

TITLE_PROMPT = (
    "Suggest a title for the following note content. Consider these similar note titles "
    "for context: {similar_titles}. Return only the suggested title as plain text:\n\n{content}"
)

TAGS_PROMPT = (
    "Suggest relevant tags for the following note content. Return the tags as a JSON array "
    "of strings, without any symbols:\n\n{content}"
)

CONCEPTS_PROMPT = (
    "Identify key concepts in the following text. Return the concepts as a JSON array of "
    "strings:\n\n{content}"
)

ATOMIC_NOTE_PROMPT = (
    'Generate an atomic note about "{concept}" based on the following source content. '
    'Return the result as a JSON object with "title" and "content" fields. The content '
    "should include a reference back to the original note ({source}):\n\n{content}"
)

CLEAN_TEXT_PROMPT = (
    "Please clean and improve the following text. Fix any grammatical errors, improve "
    "clarity and conciseness, and ensure proper formatting. Return only the cleaned text "
    "without any additional comments:\n\n{text}"
)

NLP_TASK_PROMPT = "Perform the following NLP task: {task}\n\nText: {text}\n\nResult:"
