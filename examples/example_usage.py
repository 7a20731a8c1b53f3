#!/usr/bin/env python3
"""
Example Usage Script for the SARSA REST API Fuzz Tester

This script walks through a short training run against a service listening on
http://localhost:8080/api/, then replays the learned policy greedily.
"""

import logging
from pathlib import Path

from restsarsa import ServiceClient, TesterConfig, TrainingStats, build_agent
from restsarsa.actions import describe_actions


def main():
    """Run complete example workflow."""

    # Configure logging
    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    print("🚀 SARSA REST API Fuzz Tester - Example Usage")
    print("=" * 60)

    # Short run; the reference run uses 200,000 episodes
    config = TesterConfig(episodes=500, log_every=100)
    client = ServiceClient(config.base_url, timeout=config.request_timeout)

    try:
        # Step 1: Action space
        print("\n🎛  Step 1: Action Space")
        table = describe_actions()
        needs_id = [entry['name'] for entry in table if entry['requires_id']]
        print(f"   • {len(table)} actions, {len(needs_id)} need a known identifier: {', '.join(needs_id)}")

        # Step 2: Train
        print(f"\n🤖 Step 2: Training SARSA agent for {config.episodes} episodes")
        print("⏳ This needs the service under test to be running...")
        stats = TrainingStats()
        agent = build_agent(config, client=client, stats=stats)
        results = agent.train()

        bugs = sum(r.bugs_found for r in results)
        print("✅ Training completed")
        print(f"   • Server errors provoked: {bugs}")
        print(f"   • Unique bug combinations: {len(stats.unique_bug_combos)}")
        for combo in sorted(stats.unique_bug_combos):
            print(f"      - {combo}")

        model_path = Path("sarsa_model.npz")
        agent.network.save(model_path)
        print(f"💾 Model saved to {model_path}")

        # Step 3: Greedy replay
        print("\n🧪 Step 3: Replaying the learned policy")
        for result in agent.evaluate(3):
            print(f"   Episode {result.episode}: reward {result.total_reward:.2f}, "
                  f"{result.executions} requests, {result.bugs_found} bugs")
            for combo in result.bug_combos:
                print(f"      🐛 {combo}")

    except Exception as e:
        print(f"❌ Example failed: {e}")
        raise
    finally:
        client.close()


if __name__ == "__main__":
    main()
