"""Entity graph, field paths and the pure mutation logic over them."""
