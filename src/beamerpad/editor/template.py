"""Starting LaTeX source for a new presentation session."""

from __future__ import annotations

# The \newfontfamily and \guj lines are what every prompt tells the model to
# preserve verbatim.
GUJARATI_FONT_LINE = r"\newfontfamily\gujaratifont[Script=Gujarati]{AMDAVAD UNICODE}"
GUJ_COMMAND_LINE = r"\newcommand{\guj}[1]{{\gujaratifont #1}}"

INITIAL_LATEX_CODE = r"""\documentclass[aspectratio=169]{beamer}
\usetheme{Warsaw}

% Basic packages
\usepackage{amsmath, amssymb, amsthm}
\usepackage{graphicx}
\usepackage{hyperref}

\usepackage{fontspec}

% The user can request AMDAVAD UNICODE or other fonts via prompt if installed.
""" + GUJARATI_FONT_LINE + "\n" + GUJ_COMMAND_LINE + r"""

% Other common packages that might be useful
\usepackage{geometry}
\usepackage{fancyhdr} % Usually not needed with Beamer's own themes
\usepackage{tcolorbox}
\usepackage{xcolor} % Already used by theme, but can be explicit
\usepackage{gensymb}
\usepackage{tikz}
\usepackage{pgfplots}
\pgfplotsset{compat=1.17}
\usepackage{multicol}
\usepackage{array}

\setbeamertemplate{theorems}[numbered]
\theoremstyle{definition}
\newtheorem{exercise}{\guj{વ્યાયામ}}
\newtheorem{prob}{\guj{સમસ્યા}}
\newtheorem{exmp}{\guj{ઉદાહરણ}}
\theoremstyle{remark}
\newtheorem*{remark}{\guj{નોંધ}}
\newcommand{\cosec}{\text{cosec}} % Standard math command

\title{\guj{મારી રજૂઆત}} % My Presentation
\author{\guj{એઆઈ સહાયક}} % AI Assistant
\date{\today}

\begin{document}

\begin{frame}
  \titlepage
\end{frame}

\begin{frame}
  \frametitle{\guj{પ્રસ્તાવના}} % Introduction
  \guj{આ પ્રથમ સ્લાઇડ છે. અહીંયા તમે તમારી રજૂઆત માટે ગુજરાતીમાં લખાણ ઉમેરી શકો છો.}
\end{frame}

% \guj{વપરાશકર્તાના પ્રોમ્પ્ટના આધારે નીચે સામગ્રી ઉમેરો}

\end{document}"""


__all__ = ["GUJARATI_FONT_LINE", "GUJ_COMMAND_LINE", "INITIAL_LATEX_CODE"]
