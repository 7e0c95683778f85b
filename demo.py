"""
Team Knowledge Base - Retrieval Demo

This script demonstrates the retrieval engine end to end:
1. Build a small document collection (or load files from the command line)
2. Run semantic searches, with and without tag filters
3. Ask questions and get grounded answers

Without Azure credentials the keyword fallbacks answer instead of the
models, so the demo runs anywhere.

BEFORE RUNNING (optional, enables the AI models):
1. Copy .env.example to .env
2. Fill in your Azure credentials:
   - AZURE_OPENAI_ENDPOINT=https://<your-resource>.openai.azure.com/
   - AZURE_OPENAI_API_KEY=your-api-key

RUN:
    python demo.py [file.txt file.md file.pdf ...]
"""

import asyncio
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from config.settings import configure_logging, get_settings
from teamkb import Document, DocumentLoader, create_knowledge_service


SAMPLE_DOCUMENTS = [
    Document(
        id="1",
        title="Time Off Policy",
        body=(
            "New employees receive 15 PTO days per year. "
            "PTO requests must be submitted two weeks in advance. "
            "Unused PTO days roll over up to a maximum of five days."
        ),
        tags=["hr", "policy"],
    ),
    Document(
        id="2",
        title="Remote Work Guidelines",
        body=(
            "Employees may work remotely up to three days per week. "
            "Core collaboration hours are 10am to 3pm. "
            "Remote workers must be reachable on chat during core hours."
        ),
        tags=["hr", "remote"],
    ),
    Document(
        id="3",
        title="Expense Reports",
        body=(
            "Submit expense reports through the finance portal within 30 days. "
            "Receipts are required for any expense over 25 dollars. "
            "Managers approve reports within one week."
        ),
        tags=["finance"],
    ),
]


async def run(documents):
    service = create_knowledge_service()
    print(f"Service: {service.get_stats()}\n")

    print("Semantic search")
    print("-" * 60)
    for query, tags in [("working from home", set()), ("", {"hr"}), ("receipts", set())]:
        hits = await service.semantic_search(query, tags, documents)
        print(f"query={query!r} tags={sorted(tags)} -> {[doc.title for doc in hits]}")
    print()

    print("Question answering")
    print("-" * 60)
    questions = [
        "How many PTO days do new employees get?",
        "What are the core collaboration hours?",
        "When do I need receipts?",
    ]
    for question in questions:
        print(f"Q: {question}")
        print(f"A: {await service.answer_question(question, documents)}")
        print("-" * 60)
    print()

    print(f"Embedding cache: {service.provider.cache.stats()}")


def main():
    configure_logging(get_settings().runtime.log_level)

    print("=" * 60)
    print("Team Knowledge Base Retrieval Demo")
    print("=" * 60)
    print()

    if len(sys.argv) > 1:
        documents = [DocumentLoader.load(path) for path in sys.argv[1:]]
    else:
        documents = SAMPLE_DOCUMENTS

    asyncio.run(run(documents))


if __name__ == "__main__":
    main()
