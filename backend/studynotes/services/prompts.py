"""
Prompt templates for every generation operation.

The summary formats are consumed by the client's renderer (numbered sections,
blank lines between sections, no markup symbols), so wording changes here are
API changes.
"""

DEFAULT_SYSTEM = "You are a helpful academic assistant."

SUMMARIZE_NOTES = """Summarize the following notes clearly in plain text:

- Use numbered sections and subpoints.
- Add line spacing between major sections.
- Break into paragraphs for readability.
- Avoid Markdown symbols like ** or ##.
- Make it well-structured for easy reading by students.

Here are the notes:

{text}"""

SUMMARIZE_DOCUMENT = """Please summarize the following document content into clean, well-organized plain text.

Formatting Rules:
- Use numbered sections like 1., 2., etc.
- Each section should have a short heading/title.
- Make the heading appear on its own line (before the paragraph).
- Do NOT use markdown symbols (*, **, #, -, etc.)
- Leave a blank line after each paragraph for readability.

Example format:

1. Disk Structure
Disk drives are organized as large one-dimensional arrays...

2. Disk Scheduling
Various disk scheduling algorithms exist...

Here is the content:

{text}"""

TITLE_SYSTEM = "You name study materials. Reply with the title only."

SUGGEST_TITLE = """Suggest a short title for the following study material.

Rules:
- 2 to 3 words
- No quotes, no numbers, no punctuation at the end

Content:

{text}"""

STRUCTURED_SUMMARY_SYSTEM = """You are a helpful assistant that summarizes text. Provide the following:
1. A title (3-8 words)
2. A summary (100-150 words)
3. A list of 3-5 key topics
4. Approximate word count of the original text.

Format it in JSON like this:
{
  "title": "...",
  "summary": "...",
  "keyTopics": ["...", "..."],
  "wordCount": 123
}
Return only the JSON object."""

STRUCTURED_SUMMARY_USER = "Text:\n\n{text}"

ANSWER_SYSTEM = (
    "You are a helpful and smart AI assistant. When a question is asked based on the notes, "
    "respond in a readable and structured format. If it's a 'list-based' question "
    "(e.g. 'What are the main topics?'), return bulleted or numbered points, each on its own line. "
    "If it's a conceptual question, return a concise and well-structured paragraph. "
    "Do not remove or merge topic headings. Preserve proper spacing."
)

ANSWER_USER = "Here are the notes:\n\n{notes}\n\nNow answer this question:\n\n{question}"

STRUCTURED_ANSWER_SYSTEM = """You are a helpful assistant that answers questions using only the provided document content. Respond with JSON:
{
  "answer": "...",
  "confidence": "high" | "medium" | "low"
}
Return only the JSON object."""

STRUCTURED_ANSWER_USER = "Document content:\n{content}\n\nQuestion: {question}"

GENERATE_QUESTIONS = """You're a teacher preparing exam questions.

From the following notes, generate 5 clear questions students may be asked in an exam.

NOTES:
{text}

Only return questions numbered like:
1. ...
2. ...
3. ...
4. ...
5. ..."""

REVERSE_LEARN = {
    "concept": """You are an expert teacher. Your task is to reverse-engineer the following concept or conclusion into its foundational understanding.

Steps:
1. Show the final concept or conclusion.
2. Work backward to the intermediate idea(s).
3. Break it down into the most basic, foundational knowledge.

Concept to reverse:
"{text}\"""",
    "question": """You are a question generation assistant. Based on the following answer or explanation, generate 5 thoughtful and challenging questions.

Answer:
"{text}"

Make sure the questions are:
- Diverse (why, how, what-if, etc.)
- Insightful
- Designed to promote deep thinking""",
    "explanation": """You are a helpful tutor. Your task is to break down the following complex explanation into 3 simplified parts:
1. A high-level overview in layman's terms.
2. Key components or concepts involved.
3. A simple analogy or real-world example.

Explanation to simplify:
"{text}\"""",
}
