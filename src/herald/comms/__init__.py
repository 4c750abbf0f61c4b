"""Inter-component messaging and outbound delivery."""
