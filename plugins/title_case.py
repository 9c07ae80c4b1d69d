import string


def main(text):
    return "\n".join(string.capwords(line, " ") for line in text.split("\n"))
