def main(text):
    return "\n".join(sorted(text.split("\n")))
