"""Per-directory collections of rendered documents."""

from types import MappingProxyType


def sort_by_time(documents):
    """Most recent first; equal times fall back to output path order."""
    ordered = sorted(documents, key=lambda d: d.output_path)
    ordered.sort(key=lambda d: d.time, reverse=True)
    return tuple(ordered)


def build_collections(documents):
    """
    Group non-draft documents by containing directory.

    Must only be called once every document in the tree has been rendered,
    since any layout may reference any directory's collection. Returns a
    read-only mapping of directory -> tuple of documents.
    """
    grouped = {}
    for doc in documents:
        if doc.draft:
            continue
        grouped.setdefault(doc.directory, []).append(doc)
    return MappingProxyType({d: sort_by_time(docs) for d, docs in sorted(grouped.items())})
