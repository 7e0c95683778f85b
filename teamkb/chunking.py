"""
Document Chunking Module

WHY CHUNKING IS NECESSARY:
1. Embeddings work better on focused, coherent text
2. Retrieval is more precise with smaller, specific chunks
3. The answer prompt should only carry the few passages that matter

STRATEGY:
Sentence-window chunking. The body is split on sentence boundaries
(`.`, `!`, `?` followed by whitespace) and consecutive sentences are grouped
into non-overlapping windows of five. The last window may be shorter.
Every chunk keeps its document's title and tags so answers can cite them.

Chunks are derived and ephemeral: they are rebuilt for every request and
never stored.
"""

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

# Document loaders
import PyPDF2

SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")


@dataclass
class Document:
    """
    A knowledge-base document, as handed over by the storage layer.

    The retrieval engine only reads documents; it never mutates them.
    """
    id: str
    title: str
    body: str
    summary: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    embedding: Optional[List[float]] = None

    def search_text(self) -> str:
        """Text embedded for whole-document search: title, summary, body."""
        return f"{self.title or ''} {self.summary or ''} {self.body or ''}".strip()

    def __repr__(self):
        return f"Document(id={self.id!r}, title={self.title!r}, tags={self.tags!r})"


@dataclass
class Chunk:
    """
    A window of consecutive sentences from one document.

    - title / tags: inherited unchanged from the source document
    - document_index: position of the source document in the corpus
    - chunk_index: position within the source document
    """
    text: str
    title: str
    tags: List[str] = field(default_factory=list)
    document_index: int = 0
    chunk_index: int = 0

    def __repr__(self):
        preview = self.text[:50] + "..." if len(self.text) > 50 else self.text
        return f"Chunk({self.title}, idx={self.chunk_index}, text='{preview}')"


def split_sentences(text: str) -> List[str]:
    """Split text into sentences, keeping the terminal punctuation."""
    if not text:
        return []
    return [s for s in SENTENCE_BOUNDARY.split(text.strip()) if s]


class SentenceChunker:
    """Group sentences into fixed-size, non-overlapping windows."""

    def __init__(self, sentences_per_chunk: int = 5):
        if sentences_per_chunk < 1:
            raise ValueError("sentences_per_chunk must be at least 1")
        self.sentences_per_chunk = sentences_per_chunk

    def chunk(self, document: Document, document_index: int = 0) -> List[Chunk]:
        """Split one document into chunks."""
        sentences = split_sentences(document.body)
        size = self.sentences_per_chunk
        return [
            Chunk(
                text=" ".join(sentences[start:start + size]),
                title=document.title,
                tags=list(document.tags),
                document_index=document_index,
                chunk_index=i,
            )
            for i, start in enumerate(range(0, len(sentences), size))
        ]

    def chunk_all(self, documents: List[Document]) -> Iterator[Chunk]:
        """Chunk a corpus in order: document by document, window by window."""
        for doc_index, document in enumerate(documents):
            yield from self.chunk(document, document_index=doc_index)


class DocumentLoader:
    """Load documents from text, Markdown and PDF files."""

    @staticmethod
    def load(file_path: str, tags: Optional[List[str]] = None) -> Document:
        """
        Load a file into a Document titled after the file name.

        Raises:
            FileNotFoundError: if the path does not exist
            ValueError: if the format is not supported
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = path.suffix.lower()

        if suffix in (".txt", ".md"):
            body = DocumentLoader._load_txt(path)
        elif suffix == ".pdf":
            body = DocumentLoader._load_pdf(path)
        else:
            raise ValueError(f"Unsupported file format: {suffix}")

        return Document(
            id=str(path),
            title=path.stem,
            body=body,
            tags=list(tags or []),
        )

    @staticmethod
    def _load_txt(path: Path) -> str:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    @staticmethod
    def _load_pdf(path: Path) -> str:
        text_parts = []
        with open(path, "rb") as f:
            reader = PyPDF2.PdfReader(f)
            for page in reader.pages:
                text_parts.append(page.extract_text() or "")
        return "\n\n".join(text_parts)
