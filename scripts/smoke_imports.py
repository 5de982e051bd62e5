from local_docqa.chunking import chunk_document
from local_docqa.lexical import lexical_score


if __name__ == "__main__":
    text = (
        "Remote work is allowed three days per week. "
        "Employees must connect through the corporate VPN at all times.\n"
        "Lost devices must be reported to security within one hour."
    )
    blocks = chunk_document(text)
    matches = lexical_score("How do I report a lost device?", blocks)
    print(
        {
            "blocks": len(blocks),
            "lexical_matches": len(matches),
            "top_section": matches[0].block.citation if matches else None,
        }
    )
