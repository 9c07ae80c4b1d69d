# Drop repeated lines, keeping the first occurrence.


def main(text):
    seen = set()
    kept = []
    for line in text.split("\n"):
        if line not in seen:
            seen.add(line)
            kept.append(line)
    return "\n".join(kept)
