import textwrap

WIDTH = 72


def main(text):
    paragraphs = text.split("\n\n")
    return "\n\n".join(textwrap.fill(paragraph, width=WIDTH) for paragraph in paragraphs)
