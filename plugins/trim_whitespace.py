# Strip trailing whitespace from every line and collapse runs of blank lines.
import re


def main(text):
    lines = [line.rstrip() for line in text.split("\n")]
    return re.sub(r"\n{3,}", "\n\n", "\n".join(lines))
