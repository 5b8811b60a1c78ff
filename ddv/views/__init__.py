"""View variants: state (model), input (handlers), content (render) and Textual screens."""
