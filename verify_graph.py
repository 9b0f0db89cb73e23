import sys
import logging
from pathlib import Path

# Add project root to path
sys.path.append(str(Path(__file__).parent))

from engine.core.validation import find_dangling_references
from engine.resources.gateway import PersistenceGateway
from engine.resources.store import FileBlobStore


def main():
    logging.basicConfig(level=logging.INFO)
    logger = logging.getLogger("GraphVerification")

    path = Path(sys.argv[1] if len(sys.argv) > 1 else "dialogue.json")
    if not path.exists():
        logger.error(f"VERIFICATION FAILED: {path} does not exist")
        sys.exit(1)

    gateway = PersistenceGateway(FileBlobStore(path))

    logger.info(f"Loading {path}...")
    result = gateway.load()
    if result.absent:
        reason = result.diagnostics[0].message if result.diagnostics else "empty blob"
        logger.error(f"VERIFICATION FAILED: {reason}")
        sys.exit(1)

    graph = result.graph
    logger.info(f"Version {result.meta.version}, {len(graph)} nodes")

    for diagnostic in result.diagnostics:
        logger.warning(f"  {diagnostic}")

    dangling = find_dangling_references(graph)
    for ref in dangling:
        logger.warning(f"  {ref.node_id} answer {ref.slot} -> missing node {ref.next_id}")

    if "start" not in graph:
        logger.warning("  No 'start' node, playback will begin elsewhere")

    logger.info(
        f"VERIFICATION COMPLETE: {len(result.diagnostics)} diagnostic(s), "
        f"{len(dangling)} dangling reference(s)"
    )


if __name__ == "__main__":
    main()
