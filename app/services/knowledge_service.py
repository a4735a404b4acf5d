from pathlib import Path
import json
import re
from typing import List, Optional

from app.models.responses import KnowledgeDoc

DATA_PATH = Path(__file__).resolve().parents[1] / "data" / "knowledge_base.json"

STOP_WORDS = {
    "a", "an", "the", "is", "are", "was", "were", "be", "to", "of", "and", "or", "for", "with",
    "on", "at", "in", "by", "how", "what", "when", "where", "why", "i", "you", "my", "me", "we",
    "our", "loan", "please",
}

SYNONYMS = {
    "cibil": ("credit", "score"),
    "emi": ("installment", "monthly"),
    "dti": ("debt", "income", "ratio"),
    "docs": ("documents", "kyc"),
    "approval": ("eligible", "eligibility", "approve"),
    "tenure": ("duration", "months", "years"),
}

KEYWORD_WEIGHT = 14
TITLE_WEIGHT = 8
CONTENT_WEIGHT = 3


def load_knowledge_base(path: Path = DATA_PATH) -> List[KnowledgeDoc]:
    if not path.exists():
        return []

    with open(path, "r", encoding="utf-8") as f:
        arr = json.load(f)

    return [KnowledgeDoc(**d) for d in arr]


def tokenize(text: str) -> List[str]:
    parts = re.split(r"[^a-z0-9₹%]+", (text or "").lower())
    tokens = [p for p in parts if len(p) > 1 and p not in STOP_WORDS]
    expanded = list(tokens)
    for token in tokens:
        expanded.extend(SYNONYMS.get(token, ()))
    return list(dict.fromkeys(expanded))


class KnowledgeRetriever:
    def __init__(self, docs: Optional[List[KnowledgeDoc]] = None):
        self.docs = load_knowledge_base() if docs is None else docs

    def score(self, doc: KnowledgeDoc, tokens: List[str]) -> int:
        keywords = [k.lower() for k in doc.keywords]
        title = doc.title.lower()
        content = doc.content.lower()
        total = 0
        for token in tokens:
            if any(token in k or k in token for k in keywords):
                total += KEYWORD_WEIGHT
            if token in title:
                total += TITLE_WEIGHT
            if token in content:
                total += CONTENT_WEIGHT
        return total

    def retrieve(self, query: str, k: int = 4) -> List[KnowledgeDoc]:
        tokens = tokenize(query)
        if not tokens:
            return []
        scored = [(self.score(doc, tokens), doc) for doc in self.docs]
        # sorted() is stable, so equal scores keep table order
        ranked = sorted((pair for pair in scored if pair[0] > 0), key=lambda pair: -pair[0])
        return [doc for _, doc in ranked[:k]]

    def build_context(self, docs: List[KnowledgeDoc]) -> str:
        return "\n\n".join(f"[{i}] {d.title} ({d.category})\n{d.content}" for i, d in enumerate(docs, 1))
