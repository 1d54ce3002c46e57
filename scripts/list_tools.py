#!/usr/bin/env python3
"""
Tool Inspection Script

Connects to the finance MCP server, prints the discovered tools with their
derived capabilities, and optionally routes a sample query.

Usage:
    python scripts/list_tools.py                      # List tools
    python scripts/list_tools.py --query "Apple stock"  # Classify a query
    python scripts/list_tools.py --query "Apple stock" --run  # Also execute it
    python scripts/list_tools.py --no-llm --query "top 5 dividend stocks"
"""

import sys
import json
import asyncio
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from orchestrator import QueryEngine
from utils.logger import setup_logger, logger


def show_tools(engine: QueryEngine):
    """Print the registry snapshot."""
    tools = engine.list_tools()
    
    print(f"\n=== {len(tools)} tools ===")
    for tool in tools:
        caps = tool["capabilities"]
        flags = [
            flag for flag, enabled in (
                ("symbol", caps["requires_symbol"]),
                ("count", caps["requires_count"]),
                ("query", caps["requires_query"]),
            ) if enabled
        ]
        print(f"{tool['name']:<28} {caps['category']:<18} needs: {', '.join(flags) or '-'}")
    print("=" * 24 + "\n")


async def run(args):
    engine = QueryEngine.from_settings()
    if args.no_llm:
        engine.classifier.llm = None
    
    try:
        count = await engine.initialize()
        if not count:
            logger.error("No tools discovered; is the MCP server built and configured?")
            return 1
        
        show_tools(engine)
        
        if args.query:
            classification = await engine.classifier.classify(args.query)
            print(json.dumps(classification.model_dump(mode="json"), indent=2))
            
            if args.run:
                result = await engine.analyze(args.query)
                print(json.dumps(result, indent=2, default=str))
        return 0
    finally:
        await engine.close()


def main():
    parser = argparse.ArgumentParser(description="Inspect the finance MCP server tools")
    parser.add_argument("--query", help="Classify this query against the live registry")
    parser.add_argument("--run", action="store_true", help="Execute the query after classifying it")
    parser.add_argument("--no-llm", action="store_true", help="Use rule-based classification only")
    parser.add_argument("--log-level", default="WARNING", help="Log level")
    
    args = parser.parse_args()
    setup_logger(args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
