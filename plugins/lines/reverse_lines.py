def main(text):
    return "\n".join(reversed(text.split("\n")))
