from app.models.responses import KnowledgeDoc
from app.services.knowledge_service import KnowledgeRetriever, load_knowledge_base, tokenize


def test_bundled_knowledge_base_loads():
    docs = load_knowledge_base()
    assert len(docs) >= 10
    assert len({d.id for d in docs}) == len(docs)


def test_tokenize_drops_stop_words_and_expands_synonyms():
    tokens = tokenize("How to improve my CIBIL?")
    assert "how" not in tokens
    assert "cibil" in tokens
    assert "credit" in tokens


def test_retrieve_ranks_by_relevance():
    retriever = KnowledgeRetriever()
    docs = retriever.retrieve("how to improve my cibil score", k=3)

    assert docs[0].id == "credit-score-band"
    assert len(docs) <= 3


def test_retrieve_returns_nothing_for_empty_or_unrelated_queries():
    retriever = KnowledgeRetriever()
    assert retriever.retrieve("the of and") == []
    assert retriever.retrieve("zzzz qqqq") == []


def test_ties_keep_table_order():
    docs = [
        KnowledgeDoc(id="a", title="Alpha", category="x", content="emi", keywords=["emi"]),
        KnowledgeDoc(id="b", title="Beta", category="x", content="emi", keywords=["emi"]),
    ]
    retriever = KnowledgeRetriever(docs)
    assert [d.id for d in retriever.retrieve("emi")] == ["a", "b"]


def test_build_context_numbers_docs():
    docs = KnowledgeRetriever().retrieve("emergency fund", k=2)
    context = KnowledgeRetriever([]).build_context(docs)
    assert context.startswith("[1] ")
    assert docs[0].title in context
