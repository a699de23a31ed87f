"""External collaborators: YouTube, OpenAI, storage and rendering."""
