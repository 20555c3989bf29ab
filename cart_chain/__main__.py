from cart_chain.cli import main

raise SystemExit(main())
