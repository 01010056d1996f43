import logging

import pytest

from term_ranking.corpus import CorpusDocument, ReferenceStatistics, TermStatisticsIndex
from term_ranking.logging_utils import ROOT_LOGGER_NAME

# Candidate occurrences per document. Expected statistics:
#   protein kinase     ttf=1 df=1   nested in "protein kinase c"
#   protein kinase c   ttf=2 df=2
#   cell               ttf=4 df=3   nested in "t cell", "t cell receptor"
#   t cell             ttf=2 df=2   nested in "t cell receptor"
#   t cell receptor    ttf=1 df=1
DOCUMENTS = [
    CorpusDocument("d1", ["Protein Kinase", "protein kinase C", "cell", "cell"], token_count=20),
    CorpusDocument("d2", ["protein kinase C", "T cell", "cell"], token_count=15),
    CorpusDocument("d3", ["cell", "T cell receptor", "T cell"], token_count=10),
]

REFERENCE_FREQUENCIES = {
    "cell": 50,
    "protein": 10,
    "the": 1000,
    "kinase": 1,
    "t": 100,
    "receptor": 20,
}


@pytest.fixture
def documents():
    return list(DOCUMENTS)


@pytest.fixture
def index(documents):
    return TermStatisticsIndex.from_documents(documents)


@pytest.fixture
def reference():
    return ReferenceStatistics(REFERENCE_FREQUENCIES, source="test-reference")


@pytest.fixture
def tfidf_index():
    return TermStatisticsIndex.from_counts({"cell": (100, 50)}, corpus_size=200)


@pytest.fixture(autouse=True)
def reset_package_logger():
    yield
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
