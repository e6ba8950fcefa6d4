"""
Common-neighbour similarity shared by related movies and related people.

Both rankings follow the same shape: walk from the source node across one
hop of structural relationships to a shared neighbour, back out to candidate
nodes of the same label, aggregate the paths per candidate into an
"in common" measure, rank by a score derived from it and paginate.  Ties are
broken by the candidate's ``tmdbId`` so pages are stable across runs.

A person who both acted in and directed a movie reaches it over two
relationships.  The people ranking walks its source hop through ``anchor``
and keeps each shared movie once, so such a source does not count the movie
twice.  On the candidate side both links are kept, one ``inCommon`` entry
per relationship type.
"""
from dataclasses import dataclass

MOVIE_LINKS = ("IN_GENRE", "ACTED_IN", "DIRECTED")
PERSON_LINKS = ("ACTED_IN", "DIRECTED")


@dataclass(frozen=True)
class CommonNeighbors:
    """
    One similarity ranking.

    ``path`` must bind ``source`` and ``candidate``; ``collect`` aggregates
    the paths into ``inCommon`` and ``score`` ranks candidates from it.
    When ``anchor`` is set it must bind ``source`` and ``shared``; only
    distinct ``shared`` nodes are carried into ``path``.
    """

    path: str
    collect: str
    score: str
    alias: str
    anchor: str | None = None
    filters: tuple[str, ...] = ()
    extra_fields: tuple[str, ...] = ()

    def query(self) -> str:
        where = " AND ".join(("candidate <> source",) + self.filters)
        fields = ",\n                ".join(
            (".*",) + self.extra_fields + ("inCommon: inCommon", "score: score")
        )
        match = f"MATCH {self.path}"
        if self.anchor:
            match = f"MATCH {self.anchor}\n            WITH DISTINCT source, shared\n            {match}"
        return f"""
            {match}
            WHERE {where}
            WITH candidate, {self.collect} AS inCommon
            WITH candidate, inCommon, {self.score} AS score
            ORDER BY score DESC, candidate.tmdbId ASC
            SKIP $skip
            LIMIT $limit
            RETURN candidate {{
                {fields}
            }} AS {self.alias}
        """


def _links(types: tuple[str, ...]) -> str:
    return "|".join(types)


# score = imdbRating * number of distinct shared-connection paths
SIMILAR_MOVIES = CommonNeighbors(
    path=(
        f"(source:Movie {{tmdbId: $id}})-[:{_links(MOVIE_LINKS)}]-(shared)"
        f"-[:{_links(MOVIE_LINKS)}]-(candidate:Movie)"
    ),
    collect="count(*)",
    score="candidate.imdbRating * inCommon",
    alias="movie",
    filters=("candidate.imdbRating IS NOT NULL",),
)

# score = number of shared movie links; inCommon keeps which movie and how
SIMILAR_PEOPLE = CommonNeighbors(
    anchor=f"(source:Person {{tmdbId: $id}})-[:{_links(PERSON_LINKS)}]->(shared:Movie)",
    path=f"(shared)<-[r:{_links(PERSON_LINKS)}]-(candidate:Person)",
    collect="collect(shared { .tmdbId, .title, type: type(r) })",
    score="size(inCommon)",
    alias="person",
    extra_fields=(
        "actedCount: COUNT { (candidate)-[:ACTED_IN]->() }",
        "directedCount: COUNT { (candidate)-[:DIRECTED]->() }",
    ),
)
