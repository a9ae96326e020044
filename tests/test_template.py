from tikzsmith.adapters.latex.template import StandaloneTemplate, needs_picture_environment
from tikzsmith.core.options import EffectiveOptions


def test_bare_commands_need_a_picture() -> None:
    assert needs_picture_environment("\\draw (0,0) -- (1,0);")
    assert not needs_picture_environment("\\begin{tikzpicture}\\end{tikzpicture}")
    assert not needs_picture_environment("\\tikz \\draw (0,0) -- (1,0);")


def test_render_wraps_bare_body() -> None:
    document = StandaloneTemplate().render(
        "\\draw (0,0) -- (1,0);\n", EffectiveOptions(filename="demo")
    )
    assert document.startswith("\\documentclass[tikz,border=2pt]{standalone}\n")
    assert "\\usepackage{tikz}" in document
    assert "\\begin{tikzpicture}\n\\draw (0,0) -- (1,0);\n\\end{tikzpicture}" in document
    assert "\\usetikzlibrary" not in document
    assert "\\tikzset" not in document
    assert document.rstrip().endswith("\\end{document}")


def test_render_keeps_existing_picture_verbatim() -> None:
    body = "\\begin{tikzpicture}[x=2cm]\n\\node {$a_{1}$};\n\\end{tikzpicture}"
    document = StandaloneTemplate().render(body, EffectiveOptions(filename="demo"))
    assert document.count("\\begin{tikzpicture}") == 1
    assert body in document


def test_render_fills_every_slot() -> None:
    options = EffectiveOptions(
        filename="demo",
        libraries="arrows.meta,positioning",
        additional_packages="\\usepackage{amsmath}",
        header_includes="\\usepackage{xcolor}\n\n\\definecolor{brand}{HTML}{336699}",
        scale="1.5",
        user_options={"border": "5pt", "varwidth": "true"},
    )
    document = StandaloneTemplate().render("\\draw (0,0) circle (1);", options)
    assert "\\documentclass[tikz,border=5pt,varwidth]{standalone}" in document
    assert "\\usetikzlibrary{arrows.meta,positioning}" in document
    assert "\\usepackage{amsmath}" in document
    assert "\\usepackage{xcolor}\n\\definecolor{brand}{HTML}{336699}" in document
    assert "\\tikzset{every picture/.append style={scale=1.5, transform shape}}" in document
