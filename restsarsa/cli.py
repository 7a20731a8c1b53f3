"""
Command-line interface for the SARSA REST API fuzzer

Trains the dial-turning agent against a running service, evaluates a saved
policy greedily, and lists the action space.
"""

import sys
import logging
import time
from typing import List, Optional

import click
import colorama
from colorama import Fore, Style
from tqdm import tqdm

from .actions import describe_actions
from .agent import EpisodeResult, build_agent
from .config import TesterConfig
from .q_network import QNetwork
from .stats import TrainingStats


# Initialize colorama for cross-platform colored output
colorama.init()

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(),
            logging.FileHandler('sarsa_tester.log')
        ]
    )


def print_banner():
    """Print application banner."""
    banner = f"""
{Fore.CYAN}╔══════════════════════════════════════════════════════════════════════════════╗
║                        SARSA REST API Fuzz Tester                            ║
║                                                                              ║
║  🎛  Dial-turning agent + 🧠 Tiny Q-Network + 🐛 HTTP 500 oracle               ║
╚══════════════════════════════════════════════════════════════════════════════╝{Style.RESET_ALL}
"""
    print(banner)


def print_section(title: str, color: str = Fore.YELLOW):
    """Print a colored section header."""
    print(f"\n{color}{'='*60}")
    print(f"  {title}")
    print(f"{'='*60}{Style.RESET_ALL}")


def print_success(message: str):
    print(f"{Fore.GREEN}✓ {message}{Style.RESET_ALL}")


def print_warning(message: str):
    print(f"{Fore.YELLOW}⚠ {message}{Style.RESET_ALL}")


def print_error(message: str):
    print(f"{Fore.RED}✗ {message}{Style.RESET_ALL}")


def print_info(message: str):
    print(f"{Fore.BLUE}ℹ {message}{Style.RESET_ALL}")


def load_config(config_file: Optional[str], **overrides) -> TesterConfig:
    """Configuration file (if any) with CLI options layered on top."""
    config = TesterConfig.from_yaml(config_file) if config_file else TesterConfig()
    return config.with_overrides(**overrides)


def print_bug_summary(results: List[EpisodeResult], stats: TrainingStats):
    """Print bug counts and the most frequent bug-triggering combinations."""
    total_bugs = sum(r.bugs_found for r in results)
    total_executions = sum(r.executions for r in results)
    avg_reward = sum(r.total_reward for r in results) / len(results) if results else 0.0

    print(f"  • Episodes: {len(results)}")
    print(f"  • Requests executed: {total_executions}")
    print(f"  • Server errors (HTTP 500): {total_bugs}")
    print(f"  • Average episode reward: {avg_reward:.3f}")
    print(f"  • Unique bug combinations: {len(stats.unique_bug_combos)}")

    combos = {}
    for result in results:
        for combo in result.bug_combos:
            combos[combo] = combos.get(combo, 0) + 1
    if combos:
        print("\nTop bug-triggering combinations:")
        for combo, count in sorted(combos.items(), key=lambda kv: kv[1], reverse=True)[:5]:
            print(f"  {Fore.RED}{combo}{Style.RESET_ALL}: {count} times")


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, verbose):
    """SARSA REST API fuzz tester CLI"""
    ctx.ensure_object(dict)
    ctx.obj['verbose'] = verbose
    setup_logging(verbose)


@cli.command()
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with configuration overrides')
@click.option('--base-url', default=None, help='Base URL of the service under test')
@click.option('--episodes', type=int, default=None, help='Number of training episodes')
@click.option('--step-limit', type=int, default=None, help='Steps per episode')
@click.option('--epsilon', type=float, default=None, help='Exploration rate')
@click.option('--alpha', type=float, default=None, help='Learning rate')
@click.option('--gamma', type=float, default=None, help='Discount factor')
@click.option('--hidden-units', type=int, default=None, help='Hidden layer width')
@click.option('--seed', type=int, default=None, help='Random seed')
@click.option('--log-every', type=int, default=None, help='Episodes per statistics window')
@click.option('--save-model', type=click.Path(dir_okay=False), default=None,
              help='Save trained weights to this .npz file')
@click.pass_context
def train(ctx, config_file, base_url, episodes, step_limit, epsilon, alpha, gamma,
          hidden_units, seed, log_every, save_model):
    """Train the agent against a running service."""

    print_banner()

    try:
        config = load_config(config_file, base_url=base_url, episodes=episodes,
                             step_limit=step_limit, epsilon=epsilon, alpha=alpha, gamma=gamma,
                             hidden_units=hidden_units, seed=seed, log_every=log_every)

        print_section("🤖 Training SARSA Agent")
        print_info(f"Base URL: {config.base_url}")
        print_info(f"Episodes: {config.episodes} x {config.step_limit} steps "
                   f"(ε={config.epsilon}, α={config.alpha}, γ={config.gamma}, seed={config.seed})")

        stats = TrainingStats()
        agent = build_agent(config, stats=stats)

        start_time = time.time()
        with tqdm(total=config.episodes, desc="Training") as pbar:
            def progress(result: EpisodeResult):
                pbar.set_postfix(reward=f"{result.total_reward:.2f}",
                                 bugs=len(stats.unique_bug_combos))
                pbar.update(1)

            results = agent.train(config.episodes, progress=progress)
        training_time = time.time() - start_time
        agent.env.client.close()

        print_success(f"Training completed in {training_time:.1f} seconds")

        print_section("📊 Training Summary", Fore.GREEN)
        print_bug_summary(results, stats)

        if save_model:
            agent.network.save(save_model)
            print_success(f"Model saved to {save_model}")

    except Exception as e:
        print_error(f"Training failed: {e}")
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@cli.command()
@click.option('--model', 'model_path', type=click.Path(exists=True, dir_okay=False), required=True,
              help='Trained weights (.npz)')
@click.option('--config', 'config_file', type=click.Path(exists=True, dir_okay=False),
              help='YAML file with configuration overrides')
@click.option('--base-url', default=None, help='Base URL of the service under test')
@click.option('--episodes', type=int, default=10, help='Number of greedy episodes')
@click.option('--seed', type=int, default=None, help='Random seed')
@click.pass_context
def evaluate(ctx, model_path, config_file, base_url, episodes, seed):
    """Run the learned policy greedily, without learning."""

    print_banner()

    try:
        config = load_config(config_file, base_url=base_url, seed=seed)
        network = QNetwork.load(model_path)

        print_section("🧪 Evaluating Policy")
        print_info(f"Model: {model_path}")
        print_info(f"Base URL: {config.base_url}")

        stats = TrainingStats()
        agent = build_agent(config, network=network, stats=stats)

        with tqdm(total=episodes, desc="Evaluating") as pbar:
            results = agent.evaluate(episodes, progress=lambda result: pbar.update(1))
        agent.env.client.close()

        print_section("📊 Evaluation Summary", Fore.GREEN)
        print_bug_summary(results, stats)

        if not stats.unique_bug_combos:
            print_warning("No server errors provoked")

    except Exception as e:
        print_error(f"Evaluation failed: {e}")
        if ctx.obj.get('verbose'):
            import traceback
            traceback.print_exc()
        sys.exit(1)


@cli.command()
def actions():
    """List the action space with indices."""
    print_section("🎛  Action Space")
    for entry in describe_actions():
        value = entry['value'] or ''
        needs_id = f" {Fore.YELLOW}[requires id]{Style.RESET_ALL}" if entry['requires_id'] else ''
        print(f"  [{entry['index']:2d}] {entry['name']:<22} {entry['dial']:<10} {value}{needs_id}")


if __name__ == '__main__':
    cli()
