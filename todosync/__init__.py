"""todosync - personal todo lists kept in sync with a document store."""
